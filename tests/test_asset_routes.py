"""Tests for the asset catalog and its endpoints."""

import pytest

from common.utils import format_file_size
from server.asset_catalog import AssetCatalog, asset_url, media_type_for


@pytest.fixture
def populated_root(storage_root):
    storage_root.mkdir(parents=True)
    (storage_root / 'abc-photo.png').write_bytes(b'\x89PNG' + b'0' * 1532)
    (storage_root / 'abc-clip.mov').write_bytes(b'movie')
    (storage_root / 'abc-notes.txt').write_text('hello')
    (storage_root / 'def').mkdir()
    (storage_root / 'def' / 'def-0').write_bytes(b'chunk')
    (storage_root / '.def-file.bin.1234.part').write_bytes(b'partial')
    return storage_root


def test_list_assets_empty(api):
    response = api.get('/assets')

    assert response.status_code == 200
    assert response.json()['files'] == []


def test_list_assets_skips_namespaces_and_temp_files(api, populated_root):
    response = api.get('/assets')

    files = response.json()['files']
    assert [f['name'] for f in files] == ['abc-clip.mov', 'abc-notes.txt', 'abc-photo.png']

    photo = files[2]
    assert photo['size'] == 1536
    assert photo['formatted_size'] == '1.5 KB'
    assert photo['url'] == '/assets/abc-photo.png'
    assert photo['is_image'] is True
    assert photo['is_video'] is False

    assert files[1]['is_text'] is True


def test_get_asset_with_media_type(api, populated_root):
    response = api.get('/assets/abc-clip.mov')

    assert response.status_code == 200
    assert response.content == b'movie'
    assert response.headers['content-type'] == 'video/mp4'


def test_get_missing_asset(api, populated_root):
    response = api.get('/assets/nope.bin')

    assert response.status_code == 404
    assert response.json()['code'] == 'ARTIFACT_NOT_FOUND'


def test_hidden_and_directory_names_not_served(api, populated_root):
    assert api.get('/assets/.def-file.bin.1234.part').status_code == 404
    assert api.get('/assets/def').status_code == 404


def test_catalog_without_root(tmp_path):
    assert AssetCatalog(tmp_path / 'missing').list_assets() == []


def test_asset_url_is_quoted():
    assert asset_url('abc-my file.txt') == '/assets/abc-my%20file.txt'


@pytest.mark.parametrize('name, expected', [
    ('a.MOV', 'video/mp4'),
    ('a.mp3', 'audio/mpeg'),
    ('a.svg', 'image/svg+xml'),
    ('a.json', 'application/json'),
])
def test_media_type_for(name, expected):
    assert media_type_for(name) == expected


@pytest.mark.parametrize('size, expected', [
    (0, '0 Bytes'),
    (512, '512 Bytes'),
    (1024, '1 KB'),
    (1536, '1.5 KB'),
    (5 * 1024 * 1024, '5 MB'),
    (1024 ** 3, '1 GB'),
    (1234567, '1.18 MB'),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_head_asset(api, populated_root):
    assert api.head('/assets/abc-notes.txt').status_code == 200
    assert api.head('/assets/nope.bin').status_code == 404
