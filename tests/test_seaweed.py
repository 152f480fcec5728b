"""Tests for the Seaweed facade: batch upload, replace, delete and download."""

import io
import logging

import httpx
import pytest

from weedclient.exceptions import DeleteError, DownloadError, FidLookupError
from weedclient.file_part import FilePart
from weedclient.http_client import HttpClient
from weedclient.manifest import decode_manifest
from weedclient.seaweed import Seaweed


def paths_of(files):
    return [str(path) for path in files]


class TestBatchUpload:

    def test_batch_uses_one_assignment_and_derived_fids(self, cluster, multiple_sample_files):
        client = cluster.client()

        results = client.batch_upload_files(paths_of(multiple_sample_files))

        assert cluster.assign_calls == 1
        assert [result.fid for result in results] == [
            "4,01c0ffee.txt",
            "4,01c0ffee_1.txt",
            "4,01c0ffee_2.txt",
        ]
        for i, result in enumerate(results):
            assert result.succeeded
            assert cluster.objects[result.fid.removesuffix('.txt')].body == f'Sample content {i}'.encode()

    def test_assign_requests_one_fid_per_file(self, cluster, multiple_sample_files):
        client = cluster.client()
        seen = []
        original = client.http.post_form

        def spy(host, path, data):
            seen.append(dict(data))
            return original(host, path, data)

        client.http.post_form = spy
        client.batch_upload_files(paths_of(multiple_sample_files), collection="pics", ttl="1d")

        assert seen == [{'count': '3', 'collection': 'pics', 'ttl': '1d'}]

    def test_failed_item_does_not_affect_siblings(self, cluster, multiple_sample_files):
        cluster.fail_put_calls = {2}
        client = cluster.client()

        results = client.batch_upload_files(paths_of(multiple_sample_files))

        assert len(results) == 3
        assert results[0].succeeded
        assert results[2].succeeded
        assert results[2].fid == "4,01c0ffee_2.txt"

        failed = results[1]
        assert "write failed" in failed.error
        assert failed.fid == ""
        assert failed.file_url == ""
        assert failed.file_name == str(multiple_sample_files[1])
        assert failed.size == len('Sample content 1')

    def test_assign_failure_marks_every_item(self, cluster, multiple_sample_files):
        cluster.fail_assign_calls = {1}
        client = cluster.client()

        results = client.batch_upload_files(paths_of(multiple_sample_files))

        assert [result.error for result in results] == ["No free volumes left!"] * 3
        assert cluster.put_calls == 0
        assert [result.file_base for result in results] == ["test0.txt", "test1.txt", "test2.txt"]

    def test_parts_are_closed_after_assign_failure(self, cluster):
        cluster.fail_assign_calls = {1}
        readers = [io.BytesIO(b"a"), io.BytesIO(b"b")]
        parts = [FilePart.from_reader(reader, 1, f"{i}.bin") for i, reader in enumerate(readers)]
        client = cluster.client()

        client.batch_upload_file_parts(parts)

        assert all(reader.closed for reader in readers)

    def test_empty_batch_makes_no_requests(self, cluster):
        client = cluster.client()

        assert client.batch_upload_file_parts([]) == []
        assert cluster.requests == []

    def test_unreadable_path_fails_before_assignment(self, cluster, sample_file, tmp_path):
        client = cluster.client()

        with pytest.raises(OSError):
            client.batch_upload_files([str(sample_file), str(tmp_path / 'missing.txt')])

        assert cluster.assign_calls == 0

    def test_concurrent_batch_keeps_input_order(self, cluster, tmp_path):
        paths = []
        for i in range(8):
            path = tmp_path / f'file{i}.txt'
            path.write_text(f'content {i}')
            paths.append(str(path))
        client = cluster.client()

        results = client.batch_upload_files(paths, max_workers=4)

        assert cluster.assign_calls == 1
        assert results[0].fid == "4,01c0ffee.txt"
        for i, result in enumerate(results[1:], start=1):
            assert result.fid == f"4,01c0ffee_{i}.txt"
            assert result.file_base == f"file{i}.txt"
            assert cluster.objects[f"4,01c0ffee_{i}"].body == f'content {i}'.encode()

    def test_large_batch_item_is_chunked_under_its_fid(self, cluster):
        parts = [
            FilePart.from_reader(io.BytesIO(b"small"), 5, "small.bin"),
            FilePart.from_reader(io.BytesIO(b"x" * 25), 25, "large.bin"),
        ]
        client = cluster.client(chunk_size=10)

        results = client.batch_upload_file_parts(parts)

        assert all(result.succeeded for result in results)
        manifest_obj = cluster.objects["4,01c0ffee_1"]
        assert manifest_obj.is_manifest
        assert len(decode_manifest(manifest_obj.body).chunks) == 3
        assert not cluster.objects["4,01c0ffee"].is_manifest


class TestReplace:

    def test_delete_first_runs_before_upload(self, cluster, sample_file, tmp_path):
        client = cluster.client()
        client.upload_file(str(sample_file))
        new_version = tmp_path / 'v2.txt'
        new_version.write_text('second version')
        cluster.requests.clear()

        result = client.replace_file("4,01c0ffee", str(new_version), delete_first=True)

        methods = [m for m in cluster.methods() if m in ('DELETE', 'PUT')]
        assert methods == ['DELETE', 'PUT']
        assert cluster.assign_calls == 1
        assert cluster.objects["4,01c0ffee"].body == b'second version'
        assert result.fid == "4,01c0ffee.txt"

    def test_failed_delete_does_not_block_upload(self, cluster, sample_file, caplog):
        cluster.fail_deletes = True
        client = cluster.client()

        with caplog.at_level(logging.WARNING, logger="weedclient"):
            result = client.replace_file("3,0abc", str(sample_file), delete_first=True)

        assert result.succeeded
        assert [m for m in cluster.methods() if m in ('DELETE', 'PUT')] == ['DELETE', 'PUT']
        assert cluster.objects["3,0abc"].body == b'Sample content for testing'
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING and "uploading anyway" in r.getMessage()]
        assert len(warnings) == 1
        assert "3,0abc" in warnings[0].getMessage()

    def test_replace_without_delete_first(self, cluster, sample_file):
        client = cluster.client()

        client.replace_file("3,0abc", str(sample_file))

        assert 'DELETE' not in cluster.methods()
        assert cluster.assign_calls == 0


class TestDelete:

    def test_delete_removes_object(self, cluster, sample_file):
        client = cluster.client()
        result = client.upload_file(str(sample_file))

        client.delete_file(result.fid)

        assert cluster.objects == {}

    def test_delete_of_unknown_volume(self, cluster):
        client = cluster.client()

        with pytest.raises(FidLookupError, match="Failed to lookup 9,01ab"):
            client.delete_file("9,01ab")

    def test_delete_of_malformed_fid(self, cluster):
        client = cluster.client()

        with pytest.raises(FidLookupError, match="Invalid fid"):
            client.delete_file("not-a-fid")

    def test_delete_rejected_by_volume_server(self, cluster):
        cluster.fail_deletes = True
        client = cluster.client()

        with pytest.raises(DeleteError, match="Failed to delete 3,01ab"):
            client.delete_file("3,01ab")

    def test_delete_chunks_of_manifest(self, cluster):
        client = cluster.client(chunk_size=10)
        result = client.upload_via_reader(io.BytesIO(b"y" * 25), 25, "big.bin")
        manifest = decode_manifest(cluster.objects[result.fid.removesuffix('.bin')].body)

        left_behind = client.delete_chunks(manifest)

        assert left_behind == []
        assert cluster.chunk_objects() == {}
        assert len(cluster.manifests()) == 1


class TestDownload:

    def test_download_uses_advertised_filename(self, cluster, sample_file, tmp_path):
        client = cluster.client()
        result = client.upload_file(str(sample_file))
        target = tmp_path / 'out' / 'nested'

        file_path, written = client.download_file(result.file_url, str(target))

        assert target.is_dir()
        assert file_path == str(target / 'test.txt')
        assert written == len('Sample content for testing')
        assert (target / 'test.txt').read_text() == 'Sample content for testing'

    def test_download_falls_back_to_url_base_name(self, tmp_path):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"raw bytes"))
        client = Seaweed("master:9333", http=HttpClient(transport=transport))

        file_path, written = client.download_file("http://volume1:8080/3,01abcd", str(tmp_path))

        assert file_path == str(tmp_path / '3,01abcd')
        assert written == 9

    @pytest.mark.parametrize("advertised,expected", [
        ("../escaped.txt", "escaped.txt"),
        ("/etc/passwd", "passwd"),
        ("..\\..\\win.ini", "win.ini"),
        ("nested/dir/../..", "3,01abcd"),
        ("..", "3,01abcd"),
    ])
    def test_advertised_filename_stays_inside_directory(self, tmp_path, advertised, expected):
        transport = httpx.MockTransport(lambda request: httpx.Response(
            200,
            content=b"payload",
            headers={'Content-Disposition': f'attachment; filename="{advertised}"'},
        ))
        client = Seaweed("master:9333", http=HttpClient(transport=transport))
        target = tmp_path / 'downloads'

        file_path, _ = client.download_file("http://volume1:8080/3,01abcd", str(target))

        assert file_path == str(target / expected)
        assert (target / expected).read_bytes() == b"payload"
        assert sorted(p.name for p in tmp_path.iterdir()) == ['downloads']

    def test_download_without_any_name_uses_default(self, tmp_path):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"abc"))
        client = Seaweed("master:9333", http=HttpClient(transport=transport))

        file_path, written = client.download_file("http://volume1:8080/files/", str(tmp_path))

        assert file_path == str(tmp_path / 'download')
        assert (tmp_path / 'download').read_bytes() == b"abc"
        assert written == 3

    def test_download_by_fid_follows_master_redirect(self, cluster, sample_file, tmp_path):
        client = cluster.client()
        client.upload_file(str(sample_file))

        url, file_path, written = client.download_file_by_fid("4,01c0ffee", str(tmp_path))

        assert url == "http://master:9333/4,01c0ffee"
        assert file_path == str(tmp_path / 'test.txt')
        assert written == len('Sample content for testing')

    def test_download_missing_object(self, cluster, tmp_path):
        client = cluster.client()

        with pytest.raises(DownloadError, match="status=404"):
            client.download_file("http://volume1:8080/3,77", str(tmp_path / 'never'))

        assert not (tmp_path / 'never').exists()


class TestClient:

    def test_weed_url(self, cluster):
        assert cluster.client().weed_url("3,01637037d6") == "http://master:9333/3,01637037d6"

    def test_context_manager_closes_transport(self, cluster):
        with cluster.client() as client:
            pass

        assert client.http.session.is_closed

    def test_chunk_size_property(self, cluster):
        assert cluster.client(chunk_size=4096).chunk_size == 4096

    def test_upload_string_content(self, cluster):
        client = cluster.client()

        result = client.upload_file_part(FilePart.from_string("héllo", "greeting.txt"))

        assert cluster.objects["4,01c0ffee"].body == "héllo".encode('utf-8')
        assert result.size == 6
        assert cluster.objects["4,01c0ffee"].timestamp != ''
