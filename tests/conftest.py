"""Shared pytest fixtures: an in-memory cluster served through httpx.MockTransport."""

import re
import threading
from dataclasses import dataclass
from urllib.parse import parse_qs

import httpx
import pytest

from cli.config import Config
from weedclient.http_client import HttpClient
from weedclient.location_cache import VolumeLocationCache
from weedclient.seaweed import Seaweed

MASTER = "master:9333"


@dataclass
class StoredObject:
    """What a fake volume server holds for one fid."""
    body: bytes
    filename: str
    mime_type: str
    is_manifest: bool
    timestamp: str
    content_encoding: str


def parse_single_part(request: httpx.Request) -> tuple[dict, bytes]:
    """Split a one-part multipart body into (part headers, part data)."""
    boundary = request.headers['content-type'].split('boundary=')[1].strip('"').encode()
    part = request.content.split(b'--' + boundary)[1]
    head, _, data = part.partition(b'\r\n\r\n')
    headers = {}
    for line in head.decode().strip().split('\r\n'):
        key, _, value = line.partition(':')
        headers[key.strip().lower()] = value.strip()
    return headers, data[:-2]


class FakeCluster:
    """
    Master plus volume servers.

    Failure injection is by 1-based call number so a test can say "the third
    PUT fails" without knowing fids in advance.
    """

    def __init__(self, volumes=None, public_suffix: str = ""):
        self.volumes = volumes or {"3": "volume1:8080", "4": "volume2:8080"}
        self.public_suffix = public_suffix
        self.objects: dict[str, StoredObject] = {}
        self.requests: list[tuple[str, str]] = []
        self.assign_calls = 0
        self.lookup_calls = 0
        self.put_calls = 0
        self.fail_assign_calls: set[int] = set()
        self.fail_put_calls: set[int] = set()
        self.fail_manifest = False
        self.fail_deletes = False
        self.assign_error = "No free volumes left!"
        self._next_key = 1
        self._lock = threading.Lock()

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self, chunk_size: int = 0, cache=None, use_public_url: bool = True) -> Seaweed:
        return Seaweed(
            MASTER,
            chunk_size=chunk_size,
            http=HttpClient(transport=self.transport),
            cache=cache,
            use_public_url=use_public_url,
        )

    def public_address(self, node: str) -> str:
        if not self.public_suffix:
            return node
        host, port = node.split(':')
        return f"{host}{self.public_suffix}:{port}"

    def node_of_fid(self, fid: str) -> str:
        return self.volumes[fid.split(',')[0]]

    def chunk_objects(self) -> dict[str, StoredObject]:
        return {fid: obj for fid, obj in self.objects.items() if not obj.is_manifest}

    def manifests(self) -> dict[str, StoredObject]:
        return {fid: obj for fid, obj in self.objects.items() if obj.is_manifest}

    def methods(self) -> list[str]:
        return [method for method, _ in self.requests]

    def handle(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append((request.method, str(request.url)))
            address = f"{request.url.host}:{request.url.port}"
            if address == MASTER:
                return self._handle_master(request)
            return self._handle_volume(request, address)

    def _handle_master(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == '/dir/assign' and request.method == 'POST':
            return self._assign(request)
        if path == '/dir/lookup':
            return self._lookup(request)
        fid = path.lstrip('/')
        if fid.split(',')[0] in self.volumes:
            return httpx.Response(302, headers={'Location': f"http://{self.node_of_fid(fid)}/{fid}"})
        return httpx.Response(404)

    def _assign(self, request: httpx.Request) -> httpx.Response:
        self.assign_calls += 1
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        if self.assign_calls in self.fail_assign_calls:
            return httpx.Response(406, json={'error': self.assign_error})

        count = int(form.get('count', '1'))
        volume_ids = sorted(self.volumes)
        volume_id = volume_ids[self._next_key % len(volume_ids)]
        fid = f"{volume_id},{self._next_key:02x}c0ffee"
        self._next_key += 1
        node = self.volumes[volume_id]
        return httpx.Response(200, json={
            'fid': fid,
            'url': node,
            'publicUrl': self.public_address(node),
            'count': count,
        })

    def _lookup(self, request: httpx.Request) -> httpx.Response:
        self.lookup_calls += 1
        volume_id = request.url.params.get('volumeId', '')
        if volume_id not in self.volumes:
            return httpx.Response(404, json={'volumeId': volume_id, 'error': f"volume id {volume_id} not found"})
        node = self.volumes[volume_id]
        return httpx.Response(200, json={
            'volumeId': volume_id,
            'locations': [{'url': node, 'publicUrl': self.public_address(node)}],
        })

    def _handle_volume(self, request: httpx.Request, address: str) -> httpx.Response:
        # volume servers ignore a trailing extension on the fid
        fid = request.url.path.lstrip('/').split('.')[0]
        if request.method == 'PUT':
            return self._put(request, fid)
        if request.method == 'DELETE':
            if self.fail_deletes:
                return httpx.Response(500, json={'error': 'delete refused'})
            if self.objects.pop(fid, None) is None:
                return httpx.Response(404)
            return httpx.Response(202, json={'size': 0})
        if request.method == 'GET':
            obj = self.objects.get(fid)
            if obj is None:
                return httpx.Response(404)
            return httpx.Response(
                200,
                content=obj.body,
                headers={'Content-Disposition': f'inline; filename="{obj.filename}"'},
            )
        return httpx.Response(405)

    def _put(self, request: httpx.Request, fid: str) -> httpx.Response:
        self.put_calls += 1
        is_manifest = request.url.params.get('cm') == 'true'
        if self.put_calls in self.fail_put_calls or (is_manifest and self.fail_manifest):
            return httpx.Response(500, json={'error': 'write failed'})

        headers, data = parse_single_part(request)
        match = re.search(r'filename="([^"]*)"', headers.get('content-disposition', ''))
        self.objects[fid] = StoredObject(
            body=data,
            filename=match.group(1) if match else '',
            mime_type=headers.get('content-type', ''),
            is_manifest=is_manifest,
            timestamp=request.url.params.get('ts', ''),
            content_encoding=headers.get('content-encoding', ''),
        )
        return httpx.Response(201, json={'name': self.objects[fid].filename, 'size': len(data)})


class FakeClock:
    """Manually advanced clock for cache staleness tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def clocked_cache(fake_clock):
    return VolumeLocationCache(stale_after_seconds=600, clock=fake_clock)


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .weedclient directory
    """
    config_dir = tmp_path / '.weedclient'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def multiple_sample_files(tmp_path):
    files = []
    for i in range(3):
        file_path = tmp_path / f'test{i}.txt'
        file_path.write_text(f'Sample content {i}')
        files.append(file_path)
    return files

