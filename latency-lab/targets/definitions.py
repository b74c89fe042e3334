"""
Named target definitions.

Targets are read from the environment (``.env`` is loaded by the CLI):

    LATENCY_LAB_TARGET_<NAME>=<url>     any number of named targets
    LATENCY_LAB_DEFAULT_TARGET=<name>   target used when none is given
    DATABASE_URL=<url>                  fallback for the ``default`` target
    LATENCY_LAB_HTTP_URL=<url>          fallback for the ``http`` target
"""

import os
from functools import cached_property
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from harness.errors import InvalidConfiguration

from .backends import Backend, backend_for_url

TARGET_PREFIX = "LATENCY_LAB_TARGET_"
DEFAULT_TARGET_ENV = "LATENCY_LAB_DEFAULT_TARGET"
DEFAULT_DATABASE_URL = "sqlite:///latency_lab.db"


class Target(BaseModel):
    """A named thing to benchmark."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, pattern=r"^[a-z0-9_\-]+$")
    url: str = Field(min_length=1)

    @cached_property
    def backend(self) -> Backend:
        return backend_for_url(self.url)

    @property
    def kind(self) -> str:
        return self.backend.kind

    @property
    def driver(self) -> str:
        return self.backend.driver

    def connection_details(self) -> dict[str, str]:
        return {
            "Connection": self.name,
            "Driver": self.driver,
            **self.backend.connection_details(),
        }


def make_target(name: str, url: str) -> Target:
    try:
        return Target(name=name, url=url)
    except ValidationError as e:
        raise InvalidConfiguration(f"Invalid target {name!r}: {e}") from e


def load_targets(environ: Optional[Mapping[str, str]] = None) -> dict[str, Target]:
    """Collect every named target visible in the environment."""
    env = os.environ if environ is None else environ
    targets: dict[str, Target] = {}

    for key, value in env.items():
        if key.startswith(TARGET_PREFIX) and value:
            name = key[len(TARGET_PREFIX):].lower()
            targets[name] = make_target(name, value)

    if "default" not in targets:
        targets["default"] = make_target("default", env.get("DATABASE_URL") or DEFAULT_DATABASE_URL)
    if "http" not in targets and env.get("LATENCY_LAB_HTTP_URL"):
        targets["http"] = make_target("http", env["LATENCY_LAB_HTTP_URL"])

    return targets


def default_target_name(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    return (env.get(DEFAULT_TARGET_ENV) or "default").lower()


def resolve_target(
    name: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    kind: Optional[str] = None,
) -> Target:
    """Look up a named target, failing before any timing if it is unknown.

    Args:
        name: Target name; the configured default when omitted
        environ: Environment mapping (``os.environ`` by default)
        kind: Required backend kind (``database`` or ``http``)
    """
    targets = load_targets(environ)
    name = (name or default_target_name(environ)).lower()

    target = targets.get(name)
    if target is None:
        known = ", ".join(sorted(targets)) or "none"
        raise InvalidConfiguration(f"Unknown target {name!r} (known targets: {known})")

    # Selecting the backend validates the URL
    backend = target.backend
    if kind is not None and backend.kind != kind:
        raise InvalidConfiguration(
            f"Target {name!r} is a {backend.kind} target, expected a {kind} target"
        )
    return target
