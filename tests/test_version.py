"""
Tests for the version module of the setcode SDK.
"""
import importlib
import re
from importlib import metadata as importlib_metadata
from unittest.mock import patch, mock_open

from setcode_sdk import __version__


def _raise_not_found(name):
    raise importlib_metadata.PackageNotFoundError(name)


def test_version_format():
    """Test that the version string follows semantic versioning"""
    assert re.match(r'^\d+\.\d+\.\d+', __version__), "Version should follow semantic versioning"


@patch('importlib.metadata.version')
def test_version_from_metadata(mock_metadata_version):
    """When metadata lookup succeeds, version comes from metadata"""
    mock_metadata_version.return_value = "2.3.4"
    import setcode_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "2.3.4"
    mock_metadata_version.assert_called_with("setcode-sdk")


@patch('importlib.metadata.version')
@patch('pathlib.Path.open', new_callable=mock_open, read_data=b'[project]\nversion = "1.2.3"\n')
def test_version_from_file(mock_open_file, mock_metadata_version):
    """When metadata lookup fails, pyproject.toml is read"""
    mock_metadata_version.side_effect = importlib_metadata.PackageNotFoundError
    import setcode_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "1.2.3"


def test_version_file_not_found(monkeypatch):
    """If pyproject.toml is missing, fallback to default"""
    monkeypatch.setattr(importlib_metadata, 'version', _raise_not_found)

    def _missing(*args, **kwargs):
        raise FileNotFoundError()

    monkeypatch.setattr('pathlib.Path.open', _missing)
    import setcode_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "0.1.0"


def test_version_key_error(monkeypatch):
    """If TOML exists but has no version key, fallback to default"""
    monkeypatch.setattr(importlib_metadata, 'version', _raise_not_found)
    monkeypatch.setattr('pathlib.Path.open', mock_open(read_data=b'[project]\nname = "setcode-sdk"\n'))
    import setcode_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "0.1.0"


def test_version_toml_decode_error(monkeypatch):
    """If TOML parse fails, fallback to default"""
    monkeypatch.setattr(importlib_metadata, 'version', _raise_not_found)
    monkeypatch.setattr('pathlib.Path.open', mock_open(read_data=b'not = [valid'))
    import setcode_sdk.version as vmod
    importlib.reload(vmod)
    assert vmod.__version__ == "0.1.0"
