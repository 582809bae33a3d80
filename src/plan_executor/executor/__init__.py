"""Sequential task executor with dependency gating, retries and rollback.

A plan is an ordered list of heterogeneous steps (file create/modify/delete,
allow-listed command runs, AI queries, toolchain validations). The executor
runs them one at a time against a working directory, records one result per
task id, and keeps a LIFO stack of undo operations for every durable file
change it applied.
"""
