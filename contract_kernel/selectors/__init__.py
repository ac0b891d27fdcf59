"""Read-only selectors for the contract kernel."""

from contract_kernel.selectors.activity_selector import ActivitySelector

__all__ = ["ActivitySelector"]
