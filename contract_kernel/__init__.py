"""
Contract Kernel

The workflow core of a contract-lifecycle management system:
- Closed role enumeration with an exhaustive permission table
- Four-stage review/approval state machine per contract
- Atomic transitions (step + contract + activity in one savepoint)
- Append-only activity trail
"""

__version__ = "0.1.0"
