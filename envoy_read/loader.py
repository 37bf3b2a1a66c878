import json
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from envoy_read.errors import MalformedDocument
from envoy_read.schema import BootstrapSection, Node

# Message name at the end of each block's "@type" URL -> section name.
SECTION_TYPES = {
    "BootstrapConfigDump": "bootstrap",
    "ClustersConfigDump": "clusters",
    "EndpointsConfigDump": "endpoints",
    "ListenersConfigDump": "listeners",
    "RoutesConfigDump": "routes",
    "ScopedRoutesConfigDump": "scoped_routes",
    "SecretsConfigDump": "secrets",
}


class Document(BaseModel):
    """
    A config dump partitioned into its typed blocks.

    Blocks are kept exactly as they appear in the dump; decoding them is left
    to the section extractors so that a bad block only affects its own kind.
    """

    sections: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def section(self, name):
        """
        Returns the block for the given section name, or ``None`` when the
        dump does not contain it.

        :param name: A value of ``SECTION_TYPES`` (e.g. ``"clusters"``).
        :type name: str
        :rtype: dict | None
        """
        return self.sections.get(name)

    def node(self) -> Optional[Node]:
        """
        Returns the proxy node identity from the bootstrap block, if any.

        The bootstrap block is informational only, so a malformed one is
        logged and treated as absent.
        """
        block = self.section("bootstrap")
        if block is None:
            return None
        try:
            bootstrap = BootstrapSection.model_validate(block).bootstrap
        except ValidationError as err:
            logging.warning(f"Ignoring malformed bootstrap section: {err}")
            return None
        return bootstrap.node if bootstrap else None


def section_name(type_url):
    """
    Maps a block's ``@type`` URL to its section name.

    Only the message name after the last ``.`` is compared, so both
    ``envoy.admin.v3`` and older API versions resolve.

    :param type_url: The block's ``@type`` value, e.g.
        ``type.googleapis.com/envoy.admin.v3.ClustersConfigDump``.
    :type type_url: str
    :return: The section name or ``None`` for an unknown type.
    :rtype: str | None
    """
    return SECTION_TYPES.get(type_url.rsplit(".", 1)[-1])


def load_document(raw):
    """
    Parses a raw ``/config_dump`` response and partitions its ``configs``
    array by discriminator.

    Blocks with an unknown or missing ``@type`` are skipped so newer Envoy
    releases that add block types still load. When a type appears twice, the
    later block wins.

    :param raw: The admin API response body.
    :type raw: bytes | str
    :return: The partitioned document.
    :rtype: Document
    :raises MalformedDocument: If the body is not a JSON object holding a
        ``configs`` list of objects.
    """
    try:
        data = json.loads(raw)
    except ValueError as err:
        raise MalformedDocument(f"config dump is not valid JSON: {err}") from err
    except RecursionError as err:
        raise MalformedDocument("config dump is nested too deeply") from err

    if not isinstance(data, dict):
        raise MalformedDocument("config dump must be a JSON object")
    configs = data.get("configs")
    if configs is None:
        raise MalformedDocument("config dump has no 'configs' array")
    if not isinstance(configs, list):
        raise MalformedDocument("'configs' must be an array")

    sections = {}
    for index, block in enumerate(configs):
        if not isinstance(block, dict):
            raise MalformedDocument(f"configs[{index}] must be an object")
        type_url = block.get("@type")
        name = section_name(type_url) if isinstance(type_url, str) else None
        if name is None:
            logging.debug(f"Skipping config block of unknown type {type_url!r}")
            continue
        if name in sections:
            logging.warning(f"Config dump has more than one {name} block; using the last one")
        sections[name] = block

    logging.debug(f"Loaded config dump sections: {list(sections)}")
    return Document(sections=sections)
