import logging

from envoy_read.models import Kind


def filter_clusters(clusters, fqdn="", address=""):
    """
    Keeps clusters whose fully qualified name contains ``fqdn``.

    With an ``address`` predicate, each cluster's endpoint list is narrowed
    to the endpoints containing it, and clusters left without endpoints are
    dropped.

    :param clusters: Extracted clusters.
    :type clusters: list[Cluster]
    :param fqdn: Substring the fully qualified name must contain; empty
        disables the predicate.
    :type fqdn: str
    :param address: Substring an endpoint must contain; empty disables the
        predicate.
    :type address: str
    :rtype: list[Cluster]
    """
    if not fqdn and not address:
        return clusters

    filtered = []
    for cluster in clusters:
        if fqdn not in cluster.fully_qualified_name:
            continue
        if address:
            endpoints = [endpoint for endpoint in cluster.endpoints if address in endpoint]
            if not endpoints:
                continue
            cluster = cluster.model_copy(update={"endpoints": endpoints})
        filtered.append(cluster)
    return filtered


def filter_endpoints(endpoints, address="", port=-1):
    """
    Keeps endpoints whose ``address:port`` contains ``address`` and whose
    port equals ``port``. A ``port`` of ``-1`` disables the port predicate.
    """
    if not address and port == -1:
        return endpoints
    wanted_port = str(port)
    return [
        endpoint
        for endpoint in endpoints
        if address in endpoint.address and (port == -1 or endpoint.port == wanted_port)
    ]


def filter_listeners(listeners, address=""):
    if not address:
        return listeners
    return [listener for listener in listeners if address in listener.address]


def apply_filters(entities, params):
    """
    Applies the predicates in ``params`` to every extracted kind.

    Routes and secrets have no predicates and pass through unchanged. The
    returned mapping keeps the order of ``entities``.

    :param entities: Extracted rows keyed by kind.
    :type entities: dict[Kind, list]
    :param params: Filter parameters.
    :type params: FilterParams
    :rtype: dict[Kind, list]
    """
    filtered = {}
    for kind, rows in entities.items():
        if kind == Kind.CLUSTERS:
            filtered[kind] = filter_clusters(rows, params.fqdn, params.address)
        elif kind == Kind.ENDPOINTS:
            filtered[kind] = filter_endpoints(rows, params.address, params.port)
        elif kind == Kind.LISTENERS:
            filtered[kind] = filter_listeners(rows, params.address)
        else:
            filtered[kind] = rows
        if len(filtered[kind]) != len(rows):
            logging.debug(f"Filtered {kind.value}: kept {len(filtered[kind])} of {len(rows)}")
    return filtered
