"""HTTP boundary for the membership application workflow."""

from membership_api.app import create_app

__all__ = ["create_app"]
