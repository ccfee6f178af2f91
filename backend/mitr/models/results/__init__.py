"""Result models for service operations."""

from mitr.models.results.context import TurnContext

__all__ = ["TurnContext"]
