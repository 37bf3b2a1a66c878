import json
from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"

ADMIN_TYPE = "type.googleapis.com/envoy.admin.v3."


def make_dump(**blocks):
    """Builds a config dump holding one block per keyword, e.g. ``clusters={...}``."""
    type_names = {
        "bootstrap": "BootstrapConfigDump",
        "clusters": "ClustersConfigDump",
        "endpoints": "EndpointsConfigDump",
        "listeners": "ListenersConfigDump",
        "routes": "RoutesConfigDump",
        "secrets": "SecretsConfigDump",
    }
    return {
        "configs": [
            {"@type": ADMIN_TYPE + type_names[name], **body}
            for name, body in blocks.items()
        ]
    }


def to_bytes(dump):
    return json.dumps(dump).encode("utf-8")


def table_section(output, heading):
    """
    Returns the data rows of one table in table-mode output as lists of
    stripped cell values. Only single-line rows are expected.
    """
    lines = output.splitlines()
    start = next(i for i, line in enumerate(lines) if line.startswith(heading))
    rows = []
    for line in lines[start + 1:]:
        if not line:
            break
        if line.startswith("|"):
            rows.append([cell.strip() for cell in line.strip("|").split("|")])
    # The first row is the header.
    return rows[1:]


@pytest.fixture
def dump_path():
    return FIXTURES / "config_dump.json"


@pytest.fixture
def raw_dump(dump_path):
    return dump_path.read_bytes()


@pytest.fixture
def config_dump(raw_dump):
    return json.loads(raw_dump)


@pytest.fixture
def sections(config_dump):
    """The fixture dump's blocks keyed by their message name."""
    return {block["@type"].rsplit(".", 1)[-1]: block for block in config_dump["configs"]}
