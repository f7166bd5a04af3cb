"""
marketplace/models/gate.py

Gate verdicts: either allow, or redirect somewhere.
"""

from typing import Literal, Union
from pydantic import BaseModel, ConfigDict


class GateAllow(BaseModel):
    model_config = ConfigDict(frozen=True)

    allow: Literal[True] = True


class GateRedirect(BaseModel):
    model_config = ConfigDict(frozen=True)

    redirect_to: str
    reason: str


GateResult = Union[GateAllow, GateRedirect]

ALLOW = GateAllow()
