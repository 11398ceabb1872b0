"""Payload and result types for the Vercel REST API.

Every client call returns a ``ProviderResult``: either a ``ProviderSuccess``
wrapping the parsed payload or a ``ProviderFailure`` wrapping the typed error.
Callers branch on ``result.ok`` instead of probing dynamic JSON for an
``error`` key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, NoReturn, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from shipyard.exceptions import ShipyardError

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class ProviderSuccess(Generic[T]):
    value: T
    ok: Literal[True] = True

    def unwrap(self) -> T:
        return self.value


@dataclass(slots=True, frozen=True)
class ProviderFailure:
    error: ShipyardError
    ok: Literal[False] = False

    def unwrap(self) -> NoReturn:
        raise self.error


ProviderResult = ProviderSuccess[T] | ProviderFailure


class VercelProject(BaseModel):
    model_config = ConfigDict(extra="allow")

    # None when the project already existed and Vercel did not echo it back.
    id: str | None = None
    name: str


class VercelDeployment(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    url: str | None = None
    ready_state: str | None = Field(default=None, alias="readyState")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> VercelDeployment:
        # Creation responses carry "status", lookups carry "readyState".
        data = dict(payload)
        if "readyState" not in data and isinstance(data.get("status"), str):
            data["readyState"] = data["status"]
        return cls.model_validate(data)


class VercelDomain(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    verified: bool | None = None
