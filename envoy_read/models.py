"""Flat entity rows extracted from an Envoy config dump, plus filter parameters."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class Kind(str, Enum):
    """Entity kinds, declared in the order they are always rendered."""

    CLUSTERS = "clusters"
    ENDPOINTS = "endpoints"
    LISTENERS = "listeners"
    ROUTES = "routes"
    SECRETS = "secrets"

    @property
    def heading(self):
        return self.value.capitalize()


class Cluster(BaseModel):
    name: str
    fully_qualified_name: str
    endpoints: List[str] = Field(default_factory=list)
    type: str = ""
    last_updated: str = ""


class Endpoint(BaseModel):
    address: str
    cluster: str = ""
    weight: float = 1.0
    status: str = "UNKNOWN"

    @property
    def port(self):
        """Port part of ``address``, or an empty string for pipe addresses."""
        host, sep, port = self.address.rpartition(":")
        return port if sep and host else ""


class FilterChain(BaseModel):
    filter_chain_match: str = ""
    filters: List[str] = Field(default_factory=list)


class Listener(BaseModel):
    name: str
    address: str = ""
    direction: str = ""
    filter_chains: List[FilterChain] = Field(default_factory=list)
    last_updated: str = ""


class Route(BaseModel):
    name: str
    destination_cluster: str = ""
    last_updated: str = ""


class Secret(BaseModel):
    name: str
    type: str = ""
    status: str = ""
    valid: str = ""
    valid_from: str = ""
    valid_to: str = ""
    last_updated: str = ""


class FilterParams(BaseModel):
    """
    Predicates and scope switches applied to extracted entities.

    ``fqdn`` and ``address`` are substring predicates where an empty string
    disables them; ``port`` is an exact match where ``-1`` disables it. The
    five boolean switches narrow the output to the kinds switched on; with
    none set, every kind is shown.
    """

    fqdn: str = ""
    address: str = ""
    port: int = -1

    clusters: bool = False
    endpoints: bool = False
    listeners: bool = False
    routes: bool = False
    secrets: bool = False

    def is_narrowed(self):
        return any(getattr(self, kind.value) for kind in Kind)

    def kinds(self):
        """
        Resolves the kinds in scope under the "show all unless narrowed" rule.

        :return: The selected kinds in rendering order.
        :rtype: list[Kind]
        """
        if not self.is_narrowed():
            return list(Kind)
        return [kind for kind in Kind if getattr(self, kind.value)]

    def has_predicates(self):
        return bool(self.fqdn or self.address or self.port != -1)
