"""Domain models and static catalogs.

Why:
- Pure data structures (Pydantic v2) and the toolkit's fixed knowledge
  (required exports, known DLLs, sandbox rules) live here.
- The domain knows nothing about HTTP, subprocesses or the CLI.
"""
