from __future__ import annotations

from pathlib import Path

from cmr.core.request import RepositoryConfig, SourceConfig, VersionRef
from cmr.platform.http import MultipartUpload, StreamUpload
from cmr.services.dialect import (
    BuiltArtifact,
    HarborDialect,
    MetadataEntry,
    PlainDialect,
    ResourceOutput,
    dialect_for,
    download_base,
)

PLAIN_BODY: dict[str, object] = {
    "name": "demo",
    "version": "1.0.0",
    "digest": "sha256:abc",
    "created": "2024-01-01T00:00:00Z",
    "description": "Demo chart",
    "appVersion": "2.3",
    "home": "https://example.com",
}

HARBOR_BODY: dict[str, object] = {
    "metadata": {
        "name": "demo",
        "version": "1.0.0",
        "digest": "sha256:abc",
        "created": "2024-01-01T00:00:00Z",
        "description": "Demo chart",
        "appVersion": "2.3",
    },
    "security": {"signed": False},
}


def _source(harbor: bool) -> SourceConfig:
    return SourceConfig(RepositoryConfig("https://h/api/charts"), "demo", harbor_api=harbor)


class TestSelection:
    def test_selection_follows_harbor_flag(self) -> None:
        assert isinstance(dialect_for(_source(True)), HarborDialect)
        assert isinstance(dialect_for(_source(False)), PlainDialect)


class TestPlainDialect:
    def test_version(self) -> None:
        assert PlainDialect().version(PLAIN_BODY) == VersionRef("1.0.0", "sha256:abc")

    def test_metadata_includes_home_and_tiller_version(self) -> None:
        entries = PlainDialect().metadata(PLAIN_BODY)
        assert [e.name for e in entries] == [
            "created",
            "description",
            "appVersion",
            "home",
            "tillerVersion",
        ]
        # Absent fields still produce an entry.
        assert entries[-1] == MetadataEntry("tillerVersion", "")

    def test_upload_is_a_sized_stream(self, tmp_path: Path) -> None:
        body = PlainDialect().upload_body(BuiltArtifact(tmp_path / "demo-1.0.0.tgz", 42))
        assert body == StreamUpload(tmp_path / "demo-1.0.0.tgz", 42)


class TestHarborDialect:
    def test_version_is_nested(self) -> None:
        assert HarborDialect().version(HARBOR_BODY) == VersionRef("1.0.0", "sha256:abc")

    def test_metadata_has_app_version_only(self) -> None:
        names = [e.name for e in HarborDialect().metadata(HARBOR_BODY)]
        assert names == ["created", "description", "appVersion"]

    def test_flat_listing_entries(self) -> None:
        assert HarborDialect().version({"version": "0.1.0", "digest": "d"}) == VersionRef(
            "0.1.0", "d"
        )

    def test_upload_is_multipart(self, tmp_path: Path) -> None:
        body = HarborDialect().upload_body(BuiltArtifact(tmp_path / "demo-1.0.0.tgz", 42))
        assert body == MultipartUpload("chart", tmp_path / "demo-1.0.0.tgz")


def test_download_base_strips_api_segment() -> None:
    assert download_base("https://h/api/charts") == "https://h/charts"
    assert download_base("https://h/api/chartrepo/lib/charts") == "https://h/chartrepo/lib/charts"


def test_download_base_leaves_host_alone() -> None:
    assert download_base("http://chartapi/api/charts") == "http://chartapi/charts"
    assert download_base("https://api.example.com/api/charts") == "https://api.example.com/charts"
    assert download_base("https://h/apis/charts") == "https://h/apis/charts"


def test_resource_output_json() -> None:
    output = ResourceOutput(VersionRef("1.0.0", "d"), [MetadataEntry("created", "now")])
    assert output.to_json() == {
        "version": {"version": "1.0.0", "digest": "d"},
        "metadata": [{"name": "created", "value": "now"}],
    }
