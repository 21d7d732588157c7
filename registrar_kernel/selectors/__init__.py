"""Read-only selectors."""

from registrar_kernel.selectors.base import BaseSelector
from registrar_kernel.selectors.request_selector import RequestSelector, apply_scope

__all__ = ["BaseSelector", "RequestSelector", "apply_scope"]
