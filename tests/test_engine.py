import json

import httpx
import pytest

from conftest import make_dump, table_section, to_bytes
from envoy_read.engine import inspect_proxy, read_config
from envoy_read.errors import MalformedDocument, UnknownOutputMode
from envoy_read.models import FilterParams, Kind

WEB_CLUSTER = {
    "static_clusters": [
        {
            "cluster": {
                "name": "web.default.dc1.internal",
                "type": "STATIC",
                "load_assignment": {
                    "cluster_name": "web.default.dc1.internal",
                    "endpoints": [
                        {
                            "lb_endpoints": [
                                {"endpoint": {"address": {"socket_address": {"address": "10.0.0.1", "port_value": 8080}}}},
                                {"endpoint": {"address": {"socket_address": {"address": "192.168.0.7", "port_value": 8080}}}},
                            ]
                        }
                    ],
                },
            },
            "last_updated": "2022-05-24T17:41:59.050Z",
        }
    ]
}


class TestReadConfig:
    def test_address_filter_narrows_cluster_endpoints(self):
        result = read_config(to_bytes(make_dump(clusters=WEB_CLUSTER)), FilterParams(address="10.0.0"))
        output = result.output.decode()
        assert result.ok
        assert "Clusters (1)" in output
        assert table_section(output, "Clusters (") == [
            ["web", "web.default.dc1.internal", "10.0.0.1:8080", "STATIC", "2022-05-24T17:41:59.050Z"]
        ]
        assert "192.168.0.7" not in output

    def test_raw_ignores_filters(self, raw_dump):
        params = FilterParams(fqdn="nothing", port=1, listeners=True)
        assert read_config(raw_dump, params, "raw").output == raw_dump

    def test_raw_does_not_parse(self):
        assert read_config(b"not json", output="raw").output == b"not json"

    def test_str_input(self):
        result = read_config(json.dumps(make_dump(clusters=WEB_CLUSTER)), output="json")
        assert json.loads(result.output)["clusters"][0]["name"] == "web"

    def test_unknown_mode(self, raw_dump):
        with pytest.raises(UnknownOutputMode):
            read_config(raw_dump, output="yaml")

    def test_malformed_document(self):
        with pytest.raises(MalformedDocument):
            read_config(b'{"stats": []}')

    def test_json_counts_from_fixture(self, raw_dump):
        payload = json.loads(read_config(raw_dump, output="json").output)
        assert {kind: len(rows) for kind, rows in payload.items()} == {
            "clusters": 4,
            "endpoints": 5,
            "listeners": 4,
            "routes": 2,
            "secrets": 3,
        }

    def test_scope_switch(self, raw_dump):
        output = read_config(raw_dump, FilterParams(clusters=True)).output.decode()
        assert "Clusters (4)" in output
        for kind in (Kind.ENDPOINTS, Kind.LISTENERS, Kind.ROUTES, Kind.SECRETS):
            assert f"{kind.heading} (" not in output

    def test_title_from_bootstrap_node(self, raw_dump):
        output = read_config(raw_dump).output.decode()
        assert output.splitlines()[0] == "Envoy configuration for web-6d8f7c9b5-x2lqp-web-sidecar-proxy (cluster web):"

    def test_explicit_title(self, raw_dump):
        output = read_config(raw_dump, title="proxy").output.decode()
        assert output.splitlines()[0] == "proxy"

    def test_no_title_without_bootstrap(self):
        output = read_config(to_bytes(make_dump(clusters=WEB_CLUSTER))).output.decode()
        assert output.splitlines()[0] == "Clusters (1)"

    def test_malformed_section_reported(self):
        dump = make_dump(clusters={"static_clusters": 7}, routes={"static_route_configs": []})
        result = read_config(to_bytes(dump), output="json")
        assert not result.ok
        assert list(result.errors) == [Kind.CLUSTERS]
        assert result.errors[Kind.CLUSTERS].kind == "clusters"
        payload = json.loads(result.output)
        assert "clusters" not in payload
        assert payload["routes"] == []

    def test_filtered_endpoints_by_port(self, raw_dump):
        payload = json.loads(read_config(raw_dump, FilterParams(endpoints=True, port=20000), "json").output)
        assert [e["address"] for e in payload["endpoints"]] == ["10.244.0.11:20000", "10.244.0.12:20000"]


class TestInspectProxy:
    def test_fetches_and_renders(self, raw_dump):
        result = inspect_proxy(lambda: raw_dump, FilterParams(secrets=True), "json")
        assert [s["name"] for s in json.loads(result.output)["secrets"]] == [
            "default",
            "ROOTCA",
            "spiffe://cluster.local/ns/default/sa/web",
        ]

    def test_unknown_mode_skips_fetch(self):
        calls = []

        def fetch():
            calls.append(1)
            return b"{}"

        with pytest.raises(UnknownOutputMode):
            inspect_proxy(fetch, output="csv")
        assert calls == []

    def test_fetch_errors_propagate(self):
        request = httpx.Request("GET", "http://localhost:19000/config_dump")

        def fetch():
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(httpx.ConnectError):
            inspect_proxy(fetch)
