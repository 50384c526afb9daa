"""Base Pydantic models for the idbroker SDK.

This module provides the base model class that SDK value objects inherit from.
It establishes consistent configuration across all models including:

- Strict field validation (no extra fields allowed)
- Immutable instances for thread safety
- Consistent serialization behavior

Example:
    >>> from idbroker.sdk.models import SdkBaseModel
    >>>
    >>> class Redirect(SdkBaseModel):
    ...     url: str
    >>>
    >>> Redirect(url="https://idp.example.org/login").model_dump()
    {'url': 'https://idp.example.org/login'}
"""

from pydantic import BaseModel, ConfigDict


class SdkBaseModel(BaseModel):
    """Base model for all idbroker SDK Pydantic models.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable for thread safety

    Models that are mutated while a workflow runs (e.g. WorkflowState) use
    their own configuration instead of inheriting from this base.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)
