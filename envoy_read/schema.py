"""
Pydantic models for the sections of an Envoy admin ``/config_dump`` response.

Only the fields the extractors read are declared; everything else in the
document is ignored. Every nested field is optional and falls back to an
empty default, so a missing (or ``null``) sub-structure is never an error. A field that is
present with the wrong shape (a scalar where a list is expected, say) fails
validation, which the extractors surface as a malformed section.

Filter ``typed_config`` payloads are polymorphic. They are decoded into one
of a few tagged variants chosen by the suffix of their ``@type`` URL.
"""

from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, model_validator


class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data):
        # A JSON null reads the same as an absent field.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


# Addresses


class SocketAddress(_Schema):
    address: str = ""
    port_value: Optional[int] = None


class Pipe(_Schema):
    path: str = ""


class Address(_Schema):
    socket_address: Optional[SocketAddress] = None
    pipe: Optional[Pipe] = None


# Endpoints (shared by clusters and the endpoints section)


class EndpointDetail(_Schema):
    address: Optional[Address] = None


class LbEndpoint(_Schema):
    endpoint: Optional[EndpointDetail] = None
    health_status: str = "UNKNOWN"
    load_balancing_weight: float = 1.0


class LocalityLbEndpoints(_Schema):
    lb_endpoints: List[LbEndpoint] = Field(default_factory=list)


class ClusterLoadAssignment(_Schema):
    cluster_name: str = ""
    endpoints: List[LocalityLbEndpoints] = Field(default_factory=list)


class EndpointConfigEntry(_Schema):
    endpoint_config: Optional[ClusterLoadAssignment] = None
    last_updated: str = ""


class EndpointsSection(_Schema):
    static_endpoint_configs: List[EndpointConfigEntry] = Field(default_factory=list)
    dynamic_endpoint_configs: List[EndpointConfigEntry] = Field(default_factory=list)


# Clusters


class CustomClusterType(_Schema):
    name: str = ""


class ClusterConfig(_Schema):
    name: str = ""
    type: str = ""
    cluster_type: Optional[CustomClusterType] = None
    load_assignment: Optional[ClusterLoadAssignment] = None


class ClusterEntry(_Schema):
    cluster: Optional[ClusterConfig] = None
    last_updated: str = ""


class ClustersSection(_Schema):
    static_clusters: List[ClusterEntry] = Field(default_factory=list)
    dynamic_active_clusters: List[ClusterEntry] = Field(default_factory=list)


# Routes


class RegexMatcher(_Schema):
    regex: str = ""


class RouteMatch(_Schema):
    prefix: Optional[str] = None
    path: Optional[str] = None
    safe_regex: Optional[RegexMatcher] = None


class WeightedCluster(_Schema):
    name: str = ""
    weight: Optional[int] = None


class WeightedClusters(_Schema):
    clusters: List[WeightedCluster] = Field(default_factory=list)


class RouteAction(_Schema):
    cluster: str = ""
    weighted_clusters: Optional[WeightedClusters] = None


class RouteEntry(_Schema):
    match: Optional[RouteMatch] = None
    route: Optional[RouteAction] = None


class VirtualHost(_Schema):
    name: str = ""
    domains: List[str] = Field(default_factory=list)
    routes: List[RouteEntry] = Field(default_factory=list)


class RouteConfiguration(_Schema):
    name: str = ""
    virtual_hosts: List[VirtualHost] = Field(default_factory=list)


class RouteConfigEntry(_Schema):
    route_config: Optional[RouteConfiguration] = None
    last_updated: str = ""


class RoutesSection(_Schema):
    static_route_configs: List[RouteConfigEntry] = Field(default_factory=list)
    dynamic_route_configs: List[RouteConfigEntry] = Field(default_factory=list)


# Authorization (RBAC)


class StringMatcher(_Schema):
    exact: Optional[str] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    contains: Optional[str] = None
    safe_regex: Optional[RegexMatcher] = None


class Authenticated(_Schema):
    principal_name: Optional[StringMatcher] = None


class Principal(_Schema):
    any: bool = False
    authenticated: Optional[Authenticated] = None
    not_id: Optional["Principal"] = None
    and_ids: Optional["PrincipalSet"] = None
    or_ids: Optional["PrincipalSet"] = None


class PrincipalSet(_Schema):
    ids: List[Principal] = Field(default_factory=list)


Principal.model_rebuild()
PrincipalSet.model_rebuild()


class Policy(_Schema):
    principals: List[Principal] = Field(default_factory=list)


class RbacRules(_Schema):
    # An omitted action is the protobuf default.
    action: str = "ALLOW"
    policies: Dict[str, Policy] = Field(default_factory=dict)


# Filter typed configs


class OpaqueConfig(_Schema):
    type_url: str = Field("", alias="@type")


class RbacConfig(OpaqueConfig):
    rules: Optional[RbacRules] = None


class TcpProxyConfig(OpaqueConfig):
    cluster: str = ""
    weighted_clusters: Optional[WeightedClusters] = None


class Rds(_Schema):
    route_config_name: str = ""


_TAGS_BY_SUFFIX = {
    ".RBAC": "rbac",
    ".TcpProxy": "tcp_proxy",
    ".HttpConnectionManager": "http_connection_manager",
}


def _typed_config_tag(value):
    if isinstance(value, dict):
        type_url = value.get("@type") or ""
    elif isinstance(value, OpaqueConfig):
        type_url = value.type_url
    else:
        # No tag makes validation fail for scalars and lists.
        return None
    if not isinstance(type_url, str):
        return None
    for suffix, tag in _TAGS_BY_SUFFIX.items():
        if type_url.endswith(suffix):
            return tag
    return "opaque"


def _http_filter_tag(value):
    tag = _typed_config_tag(value)
    if tag in ("tcp_proxy", "http_connection_manager"):
        return "opaque"
    return tag


HttpFilterConfig = Annotated[
    Union[
        Annotated[RbacConfig, Tag("rbac")],
        Annotated[OpaqueConfig, Tag("opaque")],
    ],
    Discriminator(_http_filter_tag),
]


class HttpFilter(_Schema):
    name: str = ""
    typed_config: Optional[HttpFilterConfig] = None


class HttpConnectionManagerConfig(OpaqueConfig):
    route_config: Optional[RouteConfiguration] = None
    rds: Optional[Rds] = None
    http_filters: List[HttpFilter] = Field(default_factory=list)


TypedConfig = Annotated[
    Union[
        Annotated[RbacConfig, Tag("rbac")],
        Annotated[TcpProxyConfig, Tag("tcp_proxy")],
        Annotated[HttpConnectionManagerConfig, Tag("http_connection_manager")],
        Annotated[OpaqueConfig, Tag("opaque")],
    ],
    Discriminator(_typed_config_tag),
]


# Listeners


class CidrRange(_Schema):
    address_prefix: str = ""
    prefix_len: Optional[int] = None


class FilterChainMatch(_Schema):
    prefix_ranges: List[CidrRange] = Field(default_factory=list)


class NetworkFilter(_Schema):
    name: str = ""
    typed_config: Optional[TypedConfig] = None


class FilterChainConfig(_Schema):
    name: str = ""
    filter_chain_match: Optional[FilterChainMatch] = None
    filters: List[NetworkFilter] = Field(default_factory=list)


class ListenerConfig(_Schema):
    name: str = ""
    address: Optional[Address] = None
    filter_chains: List[FilterChainConfig] = Field(default_factory=list)
    traffic_direction: str = ""


class ListenerState(_Schema):
    listener: Optional[ListenerConfig] = None
    last_updated: str = ""


class DynamicListener(_Schema):
    name: str = ""
    active_state: Optional[ListenerState] = None
    warming_state: Optional[ListenerState] = None
    draining_state: Optional[ListenerState] = None


class ListenersSection(_Schema):
    static_listeners: List[ListenerState] = Field(default_factory=list)
    dynamic_listeners: List[DynamicListener] = Field(default_factory=list)


# Secrets


class SecretConfig(_Schema):
    name: str = ""
    tls_certificate: Optional[Dict[str, Any]] = None
    validation_context: Optional[Dict[str, Any]] = None
    session_ticket_keys: Optional[Dict[str, Any]] = None
    generic_secret: Optional[Dict[str, Any]] = None


class SecretEntry(_Schema):
    name: str = ""
    last_updated: str = ""
    secret: Optional[SecretConfig] = None


class SecretsSection(_Schema):
    static_secrets: List[SecretEntry] = Field(default_factory=list)
    dynamic_active_secrets: List[SecretEntry] = Field(default_factory=list)
    dynamic_warming_secrets: List[SecretEntry] = Field(default_factory=list)


# Bootstrap


class Node(_Schema):
    id: str = ""
    cluster: str = ""


class Bootstrap(_Schema):
    node: Optional[Node] = None


class BootstrapSection(_Schema):
    bootstrap: Optional[Bootstrap] = None
