"""
Registrar Kernel

Lifecycle engine for registrar document requests:
- Priced, uniquely identified request intake
- Enforced status and pickup state machine
- Append-only tracking history
- Department-scoped reporting
"""

__version__ = "0.1.0"
