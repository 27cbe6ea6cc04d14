"""Pydantic and dataclass models shared across services."""
