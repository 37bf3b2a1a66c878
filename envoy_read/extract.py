"""
Section extractors: turn each decoded config dump section into flat rows.

Each ``extract_*`` function takes the raw block for its section (or ``None``
when the dump does not have one), decodes it once against its schema and
walks the result. Absent sub-structures produce empty values; only a block
whose shape cannot be decoded raises ``MalformedSection``.
"""

import logging

from pydantic import ValidationError

from envoy_read.errors import MalformedSection
from envoy_read.models import Cluster, Endpoint, FilterChain, Kind, Listener, Route, Secret
from envoy_read.schema import (
    ClustersSection,
    EndpointsSection,
    HttpConnectionManagerConfig,
    ListenersSection,
    RbacConfig,
    RoutesSection,
    SecretsSection,
    TcpProxyConfig,
)

INBOUND = "INBOUND"
OUTBOUND = "OUTBOUND"

SECRET_TYPES = (
    ("tls_certificate", "TLS Certificate"),
    ("validation_context", "Certificate Authority"),
    ("session_ticket_keys", "Session Ticket Keys"),
    ("generic_secret", "Generic Secret"),
)


def _decode(kind, schema, block):
    try:
        return schema.model_validate(block)
    except ValidationError as err:
        first = err.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "<root>"
        detail = f"{location}: {first['msg']}"
        if err.error_count() > 1:
            detail += f" (and {err.error_count() - 1} more)"
        raise MalformedSection(kind.value, detail) from err


def extract_name(fqdn):
    """
    Derives a cluster's short name from its fully qualified name.

    >>> extract_name("web.default.dc1.internal.consul")
    'web'
    >>> extract_name("local_app")
    'local_app'
    """
    return fqdn.split(".", 1)[0]


def split_listener_name(combined):
    """
    Splits a listener name of the form ``name:address:port`` on the first
    ``:``. The address keeps any further colons verbatim.

    :param combined: The listener's name as reported by Envoy.
    :type combined: str
    :return: A ``(name, address)`` tuple; the address is empty when the
        name holds no ``:``.
    :rtype: tuple[str, str]
    """
    name, _, address = combined.partition(":")
    return name, address


def format_address(address):
    """Renders an Envoy ``Address`` as ``host:port``, a pipe path, or ``""``."""
    if address is None:
        return ""
    if address.socket_address is not None:
        socket_address = address.socket_address
        if socket_address.port_value is None:
            return socket_address.address
        return f"{socket_address.address}:{socket_address.port_value}"
    if address.pipe is not None:
        return address.pipe.path
    return ""


def _lb_endpoints(assignment):
    if assignment is None:
        return
    for locality in assignment.endpoints:
        yield from locality.lb_endpoints


def _lb_endpoint_address(lb_endpoint):
    if lb_endpoint.endpoint is None:
        return ""
    return format_address(lb_endpoint.endpoint.address)


def _endpoint_addresses(assignment):
    addresses = []
    for lb_endpoint in _lb_endpoints(assignment):
        address = _lb_endpoint_address(lb_endpoint)
        if address:
            addresses.append(address)
    return addresses


def _destinations(cluster, weighted_clusters):
    if cluster:
        return [cluster]
    if weighted_clusters is not None:
        return [weighted.name for weighted in weighted_clusters.clusters if weighted.name]
    return []


def _match_string(match):
    if match is None:
        return ""
    if match.prefix is not None:
        return match.prefix
    if match.path is not None:
        return match.path
    if match.safe_regex is not None:
        return match.safe_regex.regex
    return ""


# Clusters


def extract_clusters(block):
    """
    Extracts clusters from a ``ClustersConfigDump`` block.

    Static clusters come first, followed by dynamic active clusters. The two
    lists are concatenated as-is; a name that appears in both shows up twice.

    :param block: The raw section block, or ``None``.
    :type block: dict | None
    :return: One row per cluster.
    :rtype: list[Cluster]
    :raises MalformedSection: If the block does not fit the clusters schema.
    """
    if block is None:
        return []
    section = _decode(Kind.CLUSTERS, ClustersSection, block)

    clusters = []
    for entry in section.static_clusters + section.dynamic_active_clusters:
        config = entry.cluster
        if config is None:
            logging.debug("Skipping cluster entry without a cluster body")
            continue
        cluster_type = config.type
        if not cluster_type and config.cluster_type is not None:
            cluster_type = config.cluster_type.name
        clusters.append(
            Cluster(
                name=extract_name(config.name),
                fully_qualified_name=config.name,
                endpoints=_endpoint_addresses(config.load_assignment),
                type=cluster_type,
                last_updated=entry.last_updated,
            )
        )
    return clusters


# Endpoints


def extract_endpoints(block):
    """
    Extracts one row per load-balancing endpoint from an
    ``EndpointsConfigDump`` block, walking static then dynamic endpoint
    configs down to each socket address.

    :param block: The raw section block, or ``None``.
    :type block: dict | None
    :rtype: list[Endpoint]
    :raises MalformedSection: If the block does not fit the endpoints schema.
    """
    if block is None:
        return []
    section = _decode(Kind.ENDPOINTS, EndpointsSection, block)

    endpoints = []
    for entry in section.static_endpoint_configs + section.dynamic_endpoint_configs:
        assignment = entry.endpoint_config
        if assignment is None:
            continue
        for lb_endpoint in _lb_endpoints(assignment):
            address = _lb_endpoint_address(lb_endpoint)
            if not address:
                logging.debug(f"Skipping endpoint without an address in cluster {assignment.cluster_name!r}")
                continue
            endpoints.append(
                Endpoint(
                    address=address,
                    cluster=assignment.cluster_name,
                    weight=lb_endpoint.load_balancing_weight,
                    status=lb_endpoint.health_status,
                )
            )
    return endpoints


# Listeners


def _format_prefix_range(prefix_range):
    if prefix_range.prefix_len is None:
        return prefix_range.address_prefix
    return f"{prefix_range.address_prefix}/{prefix_range.prefix_len}"


def _principal_name_pattern(matcher):
    if matcher.safe_regex is not None:
        return matcher.safe_regex.regex
    if matcher.exact is not None:
        return matcher.exact
    if matcher.prefix is not None:
        return f"{matcher.prefix}*"
    if matcher.suffix is not None:
        return f"*{matcher.suffix}"
    if matcher.contains is not None:
        return f"*{matcher.contains}*"
    return ""


def _principal_patterns(principal):
    if principal.any:
        return ["*"]
    if principal.authenticated is not None and principal.authenticated.principal_name is not None:
        pattern = _principal_name_pattern(principal.authenticated.principal_name)
        return [pattern] if pattern else []
    if principal.not_id is not None:
        return [f"!{pattern}" for pattern in _principal_patterns(principal.not_id)]
    principal_set = principal.and_ids or principal.or_ids
    if principal_set is not None:
        return [pattern for inner in principal_set.ids for pattern in _principal_patterns(inner)]
    return []


def _describe_rbac(config):
    rules = config.rules
    if rules is None:
        return []
    patterns = [
        pattern
        for policy in rules.policies.values()
        for principal in policy.principals
        for pattern in _principal_patterns(principal)
    ]
    description = f"RBAC: {rules.action}"
    if patterns:
        description += " " + ", ".join(patterns)
    return [description]


def _describe_http(config, direction):
    descriptions = []
    if direction != OUTBOUND:
        for http_filter in config.http_filters:
            if isinstance(http_filter.typed_config, RbacConfig):
                descriptions.extend(_describe_rbac(http_filter.typed_config))

    if config.route_config is not None:
        for virtual_host in config.route_config.virtual_hosts:
            for route in virtual_host.routes:
                if route.route is None:
                    continue
                match = _match_string(route.match)
                for cluster in _destinations(route.route.cluster, route.route.weighted_clusters):
                    if match:
                        descriptions.append(f"HTTP: {match} -> {cluster}")
                    else:
                        descriptions.append(f"HTTP: -> {cluster}")
    elif config.rds is not None:
        descriptions.append(f"HTTP: RDS {config.rds.route_config_name}")
    return descriptions


def _describe_filter(network_filter, direction):
    config = network_filter.typed_config
    if isinstance(config, RbacConfig):
        if direction == OUTBOUND:
            return []
        return _describe_rbac(config)
    if isinstance(config, TcpProxyConfig):
        return [f"TCP: -> {cluster}" for cluster in _destinations(config.cluster, config.weighted_clusters)]
    if isinstance(config, HttpConnectionManagerConfig):
        return _describe_http(config, direction)
    return [network_filter.name] if network_filter.name else []


def _filter_chain(chain, direction):
    # Inbound chains skip prefix ranges; outbound filters skip RBAC.
    filter_chain_match = ""
    if direction != INBOUND and chain.filter_chain_match is not None:
        filter_chain_match = ", ".join(
            _format_prefix_range(prefix_range) for prefix_range in chain.filter_chain_match.prefix_ranges
        )

    filters = []
    for network_filter in chain.filters:
        filters.extend(_describe_filter(network_filter, direction))
    return FilterChain(filter_chain_match=filter_chain_match, filters=filters)


def _listener(combined_name, config, last_updated):
    if not combined_name and config is not None:
        combined_name = config.name
    name, address = split_listener_name(combined_name)
    if not address and config is not None:
        address = format_address(config.address)

    direction = config.traffic_direction if config is not None else ""
    chains = config.filter_chains if config is not None else []
    return Listener(
        name=name,
        address=address,
        direction=direction,
        filter_chains=[_filter_chain(chain, direction) for chain in chains],
        last_updated=last_updated,
    )


def extract_listeners(block):
    """
    Extracts listeners from a ``ListenersConfigDump`` block.

    Static listeners come first, then dynamic ones. A dynamic listener is
    read from its active state, falling back to its warming and then its
    draining state. Each filter chain becomes a ``FilterChain`` whose filter
    descriptions depend on the listener's traffic direction: inbound
    listeners report authorization rules, outbound listeners report the
    destination prefix ranges they match, and both report the clusters their
    TCP proxies and HTTP routes send traffic to.

    :param block: The raw section block, or ``None``.
    :type block: dict | None
    :rtype: list[Listener]
    :raises MalformedSection: If the block does not fit the listeners schema.
    """
    if block is None:
        return []
    section = _decode(Kind.LISTENERS, ListenersSection, block)

    listeners = []
    for state in section.static_listeners:
        listeners.append(_listener("", state.listener, state.last_updated))
    for dynamic in section.dynamic_listeners:
        state = dynamic.active_state or dynamic.warming_state or dynamic.draining_state
        if state is None:
            listeners.append(_listener(dynamic.name, None, ""))
        else:
            listeners.append(_listener(dynamic.name, state.listener, state.last_updated))
    return listeners


# Routes


def extract_routes(block):
    """
    Extracts one row per route configuration from a ``RoutesConfigDump``
    block.

    The destination is the route's cluster followed by its match prefix.
    When a configuration holds several virtual-host routes, the last one
    walked is the one reported.

    :param block: The raw section block, or ``None``.
    :type block: dict | None
    :rtype: list[Route]
    :raises MalformedSection: If the block does not fit the routes schema.
    """
    if block is None:
        return []
    section = _decode(Kind.ROUTES, RoutesSection, block)

    routes = []
    for entry in section.static_route_configs + section.dynamic_route_configs:
        config = entry.route_config
        if config is None:
            continue
        destination = ""
        for virtual_host in config.virtual_hosts:
            for route in virtual_host.routes:
                cluster = ""
                if route.route is not None:
                    cluster = ", ".join(_destinations(route.route.cluster, route.route.weighted_clusters))
                destination = f"{cluster}{_match_string(route.match)}"
        routes.append(Route(name=config.name, destination_cluster=destination, last_updated=entry.last_updated))
    return routes


# Secrets


def _secret_type(secret):
    if secret is None:
        return ""
    for field, label in SECRET_TYPES:
        if getattr(secret, field) is not None:
            return label
    return ""


def extract_secrets(block):
    """Extracts static, dynamic active and dynamic warming secrets."""
    if block is None:
        return []
    section = _decode(Kind.SECRETS, SecretsSection, block)

    secrets = []
    for status, entries in (
        ("", section.static_secrets),
        ("ACTIVE", section.dynamic_active_secrets),
        ("WARMING", section.dynamic_warming_secrets),
    ):
        for entry in entries:
            name = entry.name or (entry.secret.name if entry.secret is not None else "")
            secrets.append(
                Secret(
                    name=name,
                    type=_secret_type(entry.secret),
                    status=status,
                    last_updated=entry.last_updated,
                )
            )
    return secrets


EXTRACTORS = {
    Kind.CLUSTERS: extract_clusters,
    Kind.ENDPOINTS: extract_endpoints,
    Kind.LISTENERS: extract_listeners,
    Kind.ROUTES: extract_routes,
    Kind.SECRETS: extract_secrets,
}


def extract_sections(document, kinds):
    """
    Runs the extractor of every requested kind against a loaded document.

    Kinds are extracted independently: a malformed section is recorded and
    the remaining kinds are still extracted.

    :param document: The loaded config dump.
    :type document: Document
    :param kinds: Kinds to extract, in output order.
    :type kinds: list[Kind]
    :return: A ``(entities, errors)`` tuple mapping each kind to its rows or
        to the ``MalformedSection`` it raised.
    :rtype: tuple[dict[Kind, list], dict[Kind, MalformedSection]]
    """
    entities = {}
    errors = {}
    for kind in kinds:
        try:
            entities[kind] = EXTRACTORS[kind](document.section(kind.value))
        except MalformedSection as err:
            logging.error(f"Failed to extract {kind.value}: {err.detail}")
            errors[kind] = err
        else:
            logging.debug(f"Extracted {len(entities[kind])} {kind.value}")
    return entities, errors
