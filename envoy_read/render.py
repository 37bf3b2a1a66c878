import json
from enum import Enum

import click
from tabulate import tabulate

from envoy_read.errors import UnknownOutputMode
from envoy_read.models import Kind


class OutputMode(str, Enum):
    TABLE = "table"
    JSON = "json"
    RAW = "raw"

    @classmethod
    def parse(cls, value):
        """
        Resolves a configured output mode.

        :param value: ``table``, ``json`` or ``raw``.
        :type value: str | OutputMode
        :rtype: OutputMode
        :raises UnknownOutputMode: For any other value.
        """
        try:
            return cls(value)
        except ValueError:
            raise UnknownOutputMode(value, [mode.value for mode in cls]) from None


HEADERS = {
    Kind.CLUSTERS: ["Name", "FQDN", "Endpoints", "Type", "Last Updated"],
    Kind.ENDPOINTS: ["Address:Port", "Cluster", "Weight", "Status"],
    Kind.LISTENERS: ["Name", "Address:Port", "Direction", "Filter Chain Match", "Filters", "Last Updated"],
    Kind.ROUTES: ["Name", "Destination Cluster", "Last Updated"],
    Kind.SECRETS: ["Name", "Type", "Status", "Valid", "Valid From", "Valid To", "Last Updated"],
}

SECRET_STATUS_COLORS = {"ACTIVE": "green", "WARMING": "yellow"}


def _cluster_rows(clusters):
    for cluster in clusters:
        yield [
            cluster.name,
            cluster.fully_qualified_name,
            ", ".join(cluster.endpoints),
            cluster.type,
            cluster.last_updated,
        ], None


def _endpoint_rows(endpoints):
    for endpoint in endpoints:
        color = "green" if endpoint.status == "HEALTHY" else "red"
        yield [endpoint.address, endpoint.cluster, f"{endpoint.weight:.2f}", endpoint.status], color


def _listener_rows(listeners):
    for listener in listeners:
        if not listener.filter_chains:
            yield [listener.name, listener.address, listener.direction, "", "", listener.last_updated], None
            continue
        # Continuation rows for further filter chains leave the listener
        # columns blank.
        for index, chain in enumerate(listener.filter_chains):
            filters = "\n".join(chain.filters)
            if index == 0:
                yield [
                    listener.name,
                    listener.address,
                    listener.direction,
                    chain.filter_chain_match,
                    filters,
                    listener.last_updated,
                ], None
            else:
                yield ["", "", "", chain.filter_chain_match, filters, ""], None


def _route_rows(routes):
    for route in routes:
        yield [route.name, route.destination_cluster, route.last_updated], None


def _secret_rows(secrets):
    for secret in secrets:
        yield [
            secret.name,
            secret.type,
            secret.status,
            secret.valid,
            secret.valid_from,
            secret.valid_to,
            secret.last_updated,
        ], SECRET_STATUS_COLORS.get(secret.status)


ROWS = {
    Kind.CLUSTERS: _cluster_rows,
    Kind.ENDPOINTS: _endpoint_rows,
    Kind.LISTENERS: _listener_rows,
    Kind.ROUTES: _route_rows,
    Kind.SECRETS: _secret_rows,
}


def filter_summary(params):
    """Describes the active predicates, one sentence per predicate."""
    summary = []
    if params.fqdn:
        summary.append(f"Fully qualified domain names must contain `{params.fqdn}`")
    if params.address:
        summary.append(f"Endpoint addresses must contain `{params.address}`")
    if params.port != -1:
        summary.append(f"Endpoint addresses must have the port `{params.port}`")
    return summary


def table_rows(kind, entities):
    """
    Returns the table cells for a kind as ``(cells, color)`` pairs, where
    ``color`` is the accent color derived from the row's status or ``None``.
    """
    return list(ROWS[kind](entities))


def render_table(view, params, title=None, color=False):
    """
    Renders the filtered entities as one grid table per kind.

    A "Filters applied" block comes first when any predicate is active. Each
    table is preceded by a ``<Kind> (<count>)`` header where the count is the
    number of entities, not the number of table rows.

    :param view: Filtered entities keyed by kind, in output order.
    :type view: dict[Kind, list]
    :param params: The filter parameters that produced ``view``.
    :type params: FilterParams
    :param title: Optional first line naming the inspected proxy.
    :type title: str | None
    :param color: Whether to emit ANSI colors.
    :type color: bool
    :rtype: str
    """

    def style(text, **styles):
        return click.style(text, **styles) if color else text

    lines = []
    if title:
        lines.append(title)

    summary = filter_summary(params)
    if summary:
        lines.append(style("Filters applied", bold=True))
        lines.extend(style(f"  {sentence}", fg="cyan") for sentence in summary)
        lines.append("")

    for kind, entities in view.items():
        rows = []
        for cells, row_color in table_rows(kind, entities):
            if row_color:
                cells = [style(cell, fg=row_color) for cell in cells]
            rows.append(cells)
        lines.append(style(f"{kind.heading} ({len(entities)})", bold=True))
        lines.append(tabulate(rows, headers=HEADERS[kind], tablefmt="grid", disable_numparse=True))
        lines.append("")

    return "\n".join(lines)


def render_json(view):
    """
    Serializes the filtered entities as one JSON object keyed by kind name.

    Kinds keep their output order and entity fields keep their model order.
    """
    payload = {kind.value: [entity.model_dump() for entity in entities] for kind, entities in view.items()}
    return json.dumps(payload, indent=2)


def render(mode, raw, view, params, title=None, color=False):
    """
    Produces the output bytes for the selected mode.

    Raw mode returns ``raw`` untouched; ``view`` is ignored and may be
    ``None``.

    :rtype: bytes
    """
    mode = OutputMode.parse(mode)
    if mode == OutputMode.RAW:
        return raw
    if mode == OutputMode.JSON:
        return render_json(view).encode("utf-8")
    return render_table(view, params, title=title, color=color).encode("utf-8")
