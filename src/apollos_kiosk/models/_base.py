"""Base models for feed payloads.

Every feed report model inherits from :class:`FeedBaseModel` which
provides:

* ``frozen=True`` so decoded entries can be shared with the rendering
  side without defensive copies.
* ``extra="ignore"`` so publishers may add fields without breaking
  older kiosks.

Payload fields are published in snake_case already, so unlike camelCase
APIs no alias generator is configured.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class FeedBaseModel(BaseModel):
    """Base for feed report models.

    Required fields that are missing or carry the wrong JSON type make
    validation fail; the decoder treats that as "drop this key for this
    message". Scalar fields use pydantic's ``Strict*`` types so numeric
    strings, fractional counts and booleans are rejected rather than
    coerced (a JSON integer is still a valid float).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
