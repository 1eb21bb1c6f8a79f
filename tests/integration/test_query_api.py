"""
Integration tests for the ledger Query API over an in-memory store.

Tests cover:
- Discovery paths, with and without trailing slashes
- CORS headers on every response
- Listing, paging headers and filters for every collection
- Error bodies for bad identifiers, unknown records and unknown paths
- Subscriptions answering 501
"""

import uuid

import httpx
import pytest

from nmos.ledger.api import Settings, create_app
from nmos.ledger.model.types import (
    Device,
    DeviceType,
    Flow,
    Format,
    Node,
    Receiver,
    ResourceKind,
    Sender,
    Source,
    Transport,
)
from nmos.ledger.model.versions import VersionGenerator
from nmos.ledger.store import RegistryStore

BASE = "/x-nmos/query/v1.0"
HEADER = "X-Streampunk-Ledger-"

CORS_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "GET, PUT, POST, HEAD, OPTIONS, DELETE",
    "access-control-allow-headers": "Content-Type, Accept",
    "access-control-max-age": "3600",
}


def _client(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://ledger.test")


def _paging(response):
    return tuple(
        int(response.headers[f"{HEADER}{name}"]) for name in ("Total", "PageOf", "Pages", "Size")
    )


def _fill(store):
    """Register a small graph of punk-themed records, returning them by name."""
    node, _ = store.put_node(Node.create(
        label="Punkd Up Node", href="http://tereshkova.local:3000", hostname="tereshkova"))
    other_node, _ = store.put_node(Node.create(
        label="Smashing Punkins'", href="http://hopper.local:3000", hostname="hopper"))
    device, _ = store.put_device(Device.create(
        label="Dat Punking Ting", type=DeviceType.GENERIC.value, node_id=node.id))
    video_source, _ = store.put_source(Source.create(
        label="Garish Punk", description="Will you turn it down!!",
        format=Format.VIDEO.value, device_id=device.id, tags={"genre": ["punk"]}))
    audio_source, _ = store.put_source(Source.create(
        label="Noisy Punk", description="What do you look like!!",
        format=Format.AUDIO.value, device_id=device.id))
    video_flow, _ = store.put_flow(Flow.create(
        label="Junk Punk", description="You looking at me, punk?",
        format=Format.VIDEO.value, source_id=video_source.id))
    audio_flow, _ = store.put_flow(Flow.create(
        label="Funk Punk", description="Blasting at you, punk!",
        format=Format.AUDIO.value, source_id=audio_source.id))
    video_sender, _ = store.put_sender(Sender.create(
        label="In Ya Face Punk", description="What do you think you're looking at, punk?",
        flow_id=video_flow.id, transport=Transport.RTP_MCAST.value, device_id=device.id,
        manifest_href="http://tereshkova.local/video.sdp"))
    audio_sender, _ = store.put_sender(Sender.create(
        label="Listen Up Punk", description="Should have listened to your Mother!",
        flow_id=audio_flow.id, transport=Transport.RTP_MCAST.value, device_id=device.id,
        manifest_href="http://tereshkova.local/audio.sdp"))
    video_receiver, _ = store.put_receiver(Receiver.create(
        label="Watching da Punks", description="Looking at ya, punk!",
        format=Format.VIDEO.value, transport=Transport.RTP_MCAST.value, device_id=device.id))
    audio_receiver, _ = store.put_receiver(Receiver.create(
        label="Say It Punk?", description="You talking to me?",
        format=Format.AUDIO.value, transport=Transport.RTP_MCAST.value, device_id=device.id))
    return {
        "node": node,
        "other_node": other_node,
        "device": device,
        "video_source": video_source,
        "audio_source": audio_source,
        "video_flow": video_flow,
        "audio_flow": audio_flow,
        "video_sender": video_sender,
        "audio_sender": audio_sender,
        "video_receiver": video_receiver,
        "audio_receiver": audio_receiver,
    }


@pytest.fixture
def store():
    return RegistryStore(version_generator=VersionGenerator())


@pytest.fixture
def settings():
    return Settings(api_version="v1.0", cors_max_age=3600)


@pytest.fixture
def app(store, settings):
    return create_app(store, settings)


@pytest.fixture
def records(store):
    return _fill(store)


class TestDiscovery:
    """Tests for the discovery paths."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/", ["x-nmos/"]),
            ("/x-nmos", ["query/"]),
            ("/x-nmos/", ["query/"]),
            ("/x-nmos/query", ["v1.0/"]),
            ("/x-nmos/query/", ["v1.0/"]),
            (BASE, ["subscriptions/", "flows/", "sources/", "nodes/",
                    "devices/", "senders/", "receivers/"]),
            (f"{BASE}/", ["subscriptions/", "flows/", "sources/", "nodes/",
                          "devices/", "senders/", "receivers/"]),
        ],
    )
    async def test_paths(self, app, path, expected):
        """Each level lists the next."""
        async with _client(app) as client:
            response = await client.get(path)

        assert response.status_code == 200
        assert response.json() == expected

    @pytest.mark.asyncio
    async def test_unknown_short_path(self, app):
        """Unknown paths return a structured 404."""
        async with _client(app) as client:
            response = await client.get("/wibble")

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == 404
        assert body["error"] == "Could not find the requested resource '/wibble'."
        assert body["debug"] == "/wibble"

    @pytest.mark.asyncio
    async def test_unknown_collection(self, app):
        """Unknown collections under the base path return 404."""
        path = f"{BASE}/wibble"
        async with _client(app) as client:
            response = await client.get(path)

        assert response.status_code == 404
        assert response.json()["error"] == f"Could not find the requested resource '{path}'."

    @pytest.mark.asyncio
    async def test_api_version_from_settings(self, store):
        """The version segment follows the settings."""
        app = create_app(store, Settings(api_version="v1.1"))
        async with _client(app) as client:
            versions = await client.get("/x-nmos/query/")
            nodes = await client.get("/x-nmos/query/v1.1/nodes")

        assert versions.json() == ["v1.1/"]
        assert nodes.status_code == 200


class TestCors:
    """Tests for CORS headers."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/", f"{BASE}/nodes", f"{BASE}/nodes/wibble", "/wibble"])
    async def test_headers_on_every_response(self, app, path):
        """Success and error responses both carry CORS headers."""
        async with _client(app) as client:
            response = await client.get(path)

        for name, value in CORS_HEADERS.items():
            assert response.headers[name] == value

    @pytest.mark.asyncio
    async def test_options(self, app):
        """Preflight requests are answered directly."""
        async with _client(app) as client:
            response = await client.options(f"{BASE}/nodes/")

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


class TestEmptyLedger:
    """Tests against an empty store."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", list(ResourceKind))
    async def test_empty_collections(self, app, kind):
        """Empty collections are an empty list with paging headers."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/{kind.plural}/")

        assert response.status_code == 200
        assert response.json() == []
        assert _paging(response) == (0, 1, 1, 0)

    @pytest.mark.asyncio
    async def test_invalid_identifier(self, app):
        """A malformed id is a 400."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/nodes/wibble")

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == 400
        assert body["error"] == "Identifier must be a valid UUID."
        assert body["debug"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", list(ResourceKind))
    async def test_unknown_identifier(self, app, kind):
        """A valid but unknown id is a 404."""
        missing = str(uuid.uuid4())
        async with _client(app) as client:
            response = await client.get(f"{BASE}/{kind.plural}/{missing}")

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == 404
        assert body["error"].endswith(f"identifier '{missing}' could not be found.")


class TestPopulatedLedger:
    """Tests against a store holding a small graph of records."""

    @pytest.mark.asyncio
    async def test_list_nodes(self, app, store, records):
        """Nodes list in insertion order with paging headers."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/nodes")

        assert response.status_code == 200
        assert response.json() == [n.to_dict() for n in store.get_nodes().records]
        assert [n["label"] for n in response.json()] == ["Punkd Up Node", "Smashing Punkins'"]
        assert _paging(response) == (2, 1, 1, 2)

    @pytest.mark.asyncio
    async def test_get_node(self, app, records):
        """A node can be fetched by id, with or without a trailing slash."""
        node = records["node"]
        async with _client(app) as client:
            plain = await client.get(f"{BASE}/nodes/{node.id}")
            slashed = await client.get(f"{BASE}/nodes/{node.id}/")

        assert plain.status_code == 200
        assert plain.json() == node.to_dict()
        assert slashed.json() == node.to_dict()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "collection,name",
        [
            ("devices", "device"),
            ("sources", "audio_source"),
            ("flows", "video_flow"),
            ("senders", "audio_sender"),
            ("receivers", "video_receiver"),
        ],
    )
    async def test_get_each_kind(self, app, records, collection, name):
        """Every kind can be fetched by id."""
        record = records[name]
        async with _client(app) as client:
            response = await client.get(f"{BASE}/{collection}/{record.id}")

        assert response.status_code == 200
        assert response.json() == record.to_dict()

    @pytest.mark.asyncio
    async def test_kind_mismatch_not_found(self, app, records):
        """A node id is not found among devices."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/devices/{records['node'].id}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_senders_paging_headers(self, app, records):
        """Senders report the same header set as every other kind."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/senders/")

        assert _paging(response) == (2, 1, 1, 2)
        assert [s["label"] for s in response.json()] == ["In Ya Face Punk", "Listen Up Punk"]

    @pytest.mark.asyncio
    async def test_label_filter(self, app, records):
        """label is matched as a regular expression."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/sources", params={"label": "Garish"})

        assert response.json() == [records["video_source"].to_dict()]
        assert _paging(response) == (1, 1, 1, 1)

    @pytest.mark.asyncio
    async def test_description_filter(self, app, records):
        """description is matched as a regular expression."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/flows", params={"description": "Blas.ing"})

        assert response.json() == [records["audio_flow"].to_dict()]

    @pytest.mark.asyncio
    async def test_exact_filter(self, app, records):
        """Foreign keys are matched exactly."""
        async with _client(app) as client:
            matching = await client.get(f"{BASE}/devices", params={"node_id": records["node"].id})
            other = await client.get(
                f"{BASE}/devices", params={"node_id": records["other_node"].id})

        assert matching.json() == [records["device"].to_dict()]
        assert other.json() == []
        assert _paging(other) == (0, 1, 1, 0)

    @pytest.mark.asyncio
    async def test_receivers_by_device_and_format(self, app, records):
        """The short format name selects receivers on a device."""
        params = {"device_id": records["device"].id, "format": "audio"}
        async with _client(app) as client:
            response = await client.get(f"{BASE}/receivers", params=params)

        assert response.status_code == 200
        assert response.json() == [records["audio_receiver"].to_dict()]
        assert _paging(response) == (1, 1, 1, 1)

    @pytest.mark.asyncio
    async def test_repeated_parameter(self, app, records):
        """Repeated parameters must all match."""
        async with _client(app) as client:
            response = await client.get(
                f"{BASE}/sources", params=[("label", "Punk"), ("label", "^Noisy")])

        assert response.json() == [records["audio_source"].to_dict()]

    @pytest.mark.asyncio
    async def test_unknown_filter(self, app, records):
        """Filters on unknown fields match nothing."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/nodes", params={"wibble": "x"})

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_malformed_regex(self, app, records):
        """A malformed pattern matches nothing rather than failing."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/nodes", params={"label": "(("})

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_paging(self, app, records):
        """limit and page select a slice."""
        async with _client(app) as client:
            first = await client.get(f"{BASE}/nodes", params={"limit": 1})
            second = await client.get(f"{BASE}/nodes", params={"limit": 1, "page": 2})
            beyond = await client.get(f"{BASE}/nodes", params={"limit": 1, "page": 9})

        assert [n["label"] for n in first.json()] == ["Punkd Up Node"]
        assert _paging(first) == (2, 1, 2, 1)
        assert [n["label"] for n in second.json()] == ["Smashing Punkins'"]
        assert _paging(second) == (2, 2, 2, 1)
        assert _paging(beyond) == (2, 2, 2, 1)

    @pytest.mark.asyncio
    async def test_nested_values_serialised(self, app, records):
        """Map fields come back as JSON objects."""
        async with _client(app) as client:
            response = await client.get(f"{BASE}/sources/{records['video_source'].id}")

        assert response.json()["tags"] == {"genre": ["punk"]}
        assert response.json()["parents"] == []


class TestSubscriptions:
    """Subscriptions are not implemented."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/subscriptions"),
            ("GET", "/subscriptions/"),
            ("POST", "/subscriptions"),
            ("GET", "/subscriptions/1234"),
            ("DELETE", "/subscriptions/1234/"),
        ],
    )
    async def test_not_implemented(self, app, method, path):
        """Every subscriptions route answers 501."""
        async with _client(app) as client:
            response = await client.request(method, f"{BASE}{path}")

        assert response.status_code == 501
        body = response.json()
        assert body["code"] == 501
        assert body["error"] == "Subscriptions are not yet implemented for the ledger query API."


class TestServerErrors:
    """Tests for unexpected failures."""

    @pytest.mark.asyncio
    async def test_unhandled_error_is_500(self, settings):
        """Unexpected exceptions become a 500 error body with CORS headers."""

        class BrokenStore(RegistryStore):
            def get_all(self, kind, params=None):
                raise RuntimeError("store exploded")

        app = create_app(BrokenStore(), settings)
        async with _client(app) as client:
            response = await client.get(f"{BASE}/nodes")

        assert response.status_code == 500
        assert response.json() == {"code": 500, "error": "store exploded", "debug": "RuntimeError"}
        assert response.headers["access-control-allow-origin"] == "*"
