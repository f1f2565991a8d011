"""Read-only query selectors."""

from membership_kernel.selectors.application_selector import ApplicationSelector

__all__ = ["ApplicationSelector"]
