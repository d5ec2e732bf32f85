"""
SimpleQL - Pluggable authentication core

The part of SimpleQL that gates every plugin before it can attach to the
request-processing pipeline.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- validation: Declarative schema models and the recursive validator
- tables: Normalization of table declarations
- pipeline: Request context, stage results and hook dispatch
- auth: Password hashing, bearer tokens and the login plugin
- middleware: FastAPI adapter for the pipeline
"""

__version__ = "0.14.0"
