import logging
from typing import Dict, NamedTuple

from envoy_read.errors import MalformedSection
from envoy_read.extract import extract_sections
from envoy_read.filters import apply_filters
from envoy_read.loader import load_document
from envoy_read.models import FilterParams, Kind
from envoy_read.render import OutputMode, render


class ReadResult(NamedTuple):
    """Rendered output plus the sections that could not be extracted."""

    output: bytes
    errors: Dict[Kind, MalformedSection]

    @property
    def ok(self):
        return not self.errors


def _node_title(document):
    node = document.node()
    if node is None or not node.id:
        return None
    if node.cluster:
        return f"Envoy configuration for {node.id} (cluster {node.cluster}):"
    return f"Envoy configuration for {node.id}:"


def read_config(raw, params=None, output=OutputMode.TABLE, title=None, color=False):
    """
    Turns a raw ``/config_dump`` body into the requested view.

    The output mode is checked before anything else, so an unknown mode
    produces no output at all. Raw mode returns the input bytes without
    parsing them. Otherwise the document is loaded, the kinds in scope are
    extracted and filtered, and the result is rendered. Sections that fail
    to extract are left out of the output and reported in
    ``ReadResult.errors``.

    :param raw: The admin API response body.
    :type raw: bytes | str
    :param params: Filter parameters; defaults to no filtering.
    :type params: FilterParams | None
    :param output: ``table``, ``json`` or ``raw``.
    :type output: str | OutputMode
    :param title: First line of table output. Defaults to the proxy node
        identity from the bootstrap section, when present.
    :type title: str | None
    :param color: Whether table output uses ANSI colors.
    :type color: bool
    :rtype: ReadResult
    :raises UnknownOutputMode: For an unrecognised ``output``.
    :raises MalformedDocument: If the body cannot be loaded.
    """
    mode = OutputMode.parse(output)
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    if mode == OutputMode.RAW:
        return ReadResult(raw, {})

    params = params or FilterParams()
    document = load_document(raw)
    entities, errors = extract_sections(document, params.kinds())
    view = apply_filters(entities, params)

    if title is None and mode == OutputMode.TABLE:
        title = _node_title(document)
    return ReadResult(render(mode, raw, view, params, title=title, color=color), errors)


def inspect_proxy(fetch_raw_config, params=None, output=OutputMode.TABLE, title=None, color=False):
    """
    Fetches a config dump with ``fetch_raw_config`` and renders it.

    Errors raised by the fetcher propagate unchanged.

    :param fetch_raw_config: Zero-argument callable returning the dump bytes.
    :type fetch_raw_config: Callable[[], bytes]
    :rtype: ReadResult
    """
    mode = OutputMode.parse(output)
    raw = fetch_raw_config()
    logging.debug(f"Fetched config dump ({len(raw)} bytes)")
    return read_config(raw, params, mode, title=title, color=color)
