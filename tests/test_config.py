"""Tests for configuration loading and validation."""

import json

import pytest

from azure_backup.config.settings import (
    BackupConfig,
    BackupJob,
    ConfigError,
    Defaults,
    StorageTier,
    load_config,
)

from conftest import SERVICE_URI, make_job, write_config


class TestBackupConfig:
    """Test BackupConfig functionality."""

    def test_aliases_are_read(self, tmp_path):
        job = make_job("docs", ["/data"], azure_blob={"prefix": "backups/{yyyy}", "tier": "Archive"})
        job["source"]["followSymlinks"] = True
        path = write_config(tmp_path / "config.json", [job], concurrency=4, dryRun=True)

        config = load_config(path)

        assert config.version == 1
        assert config.default.concurrency == 4
        assert config.default.dry_run is True
        assert config.default.tier is StorageTier.COOL
        loaded = config.jobs[0]
        assert loaded.name == "docs"
        assert loaded.source.paths == ["/data"]
        assert loaded.source.follow_symlinks is True
        assert loaded.destination.azure_blob.service_uri == SERVICE_URI
        assert loaded.destination.azure_blob.container == "backups"
        assert loaded.destination.prefix == "backups/{yyyy}"
        assert loaded.destination.tier is StorageTier.ARCHIVE

    def test_defaults_when_omitted(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{}", encoding="utf-8")

        config = load_config(path)

        assert config.jobs == []
        assert config.default.tier is StorageTier.COOL
        assert config.default.dry_run is False
        assert config.default.concurrency >= 1

    def test_missing_include_and_empty_include_mean_everything(self, tmp_path):
        first = make_job("one", ["/a"])
        del first["source"]["include"]
        second = make_job("two", ["/b"], include=[])
        config = load_config(write_config(tmp_path / "config.json", [first, second]))

        assert config.jobs[0].source.include == ["**/*"]
        assert config.jobs[1].source.include == ["**/*"]
        assert config.jobs[0].source.follow_symlinks is False

    def test_tier_names_are_case_insensitive(self, tmp_path):
        job = make_job("docs", ["/data"], tier="archive")
        config = load_config(write_config(tmp_path / "config.json", [job], tier="HOT"))

        assert config.default.tier is StorageTier.HOT
        assert config.jobs[0].tier is StorageTier.ARCHIVE

    def test_unknown_tier_is_rejected(self, tmp_path):
        path = write_config(tmp_path / "config.json", [], tier="Glacier")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_json_comments_and_trailing_commas(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            """
            // nightly backup
            {
              "default": { "tier": "Hot", /* inline */ },
              "jobs": [
                {
                  "name": "docs",
                  "source": { "paths": ["/data"], },
                  "destination": {
                    "type": "AzureBlob",
                    "azureBlob": { "serviceUri": "https://acct.blob.core.windows.net/", "container": "c" }
                  },
                },
              ],
            }
            """,
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.default.tier is StorageTier.HOT
        assert config.jobs[0].destination.azure_blob.service_uri == "https://acct.blob.core.windows.net/"

    def test_comment_markers_inside_strings_are_kept(self, tmp_path):
        job = make_job("a /* not */ b, ]", ["//server/share"])
        config = load_config(write_config(tmp_path / "config.json", [job]))

        assert config.jobs[0].name == "a /* not */ b, ]"
        assert config.jobs[0].source.paths == ["//server/share"]

    def test_yaml_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "default:\n"
            "  concurrency: 3\n"
            "  dryRun: true\n"
            "jobs:\n"
            "  - name: photos\n"
            "    source:\n"
            "      paths: [/photos]\n"
            "      include: ['**/*.jpg']\n"
            "    destination:\n"
            "      azureBlob:\n"
            f"        serviceUri: {SERVICE_URI}\n"
            "        container: media\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.concurrency == 3
        assert config.default.dry_run is True
        assert config.jobs[0].source.include == ["**/*.jpg"]
        assert config.jobs[0].destination.type == "AzureBlob"

    def test_empty_yaml_is_an_empty_config(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("", encoding="utf-8")

        assert load_config(path).jobs == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"jobs": [', encoding="utf-8")

        with pytest.raises(ConfigError, match="Malformed"):
            load_config(path)

    def test_root_must_be_an_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(ConfigError, match="must be an object"):
            load_config(path)

    @pytest.mark.parametrize("destination", [
        {"type": "S3", "azureBlob": {"serviceUri": SERVICE_URI, "container": "c"}},
        {"type": "AzureBlob"},
        {"type": "AzureBlob", "azureBlob": {"serviceUri": SERVICE_URI, "container": "  "}},
        {"type": "AzureBlob", "azureBlob": {"serviceUri": "", "container": "c"}},
        {"type": "AzureBlob", "azureBlob": {"serviceUri": "ftp://host/", "container": "c"}},
    ])
    def test_invalid_destinations(self, tmp_path, destination):
        job = {"name": "bad", "source": {"paths": ["/data"]}, "destination": destination}
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"jobs": [job]}), encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_destination_type_is_case_insensitive(self):
        job = BackupJob.model_validate({
            "destination": {"type": "azureblob", "azureBlob": {"serviceUri": SERVICE_URI, "container": "c"}},
        })

        assert job.destination.type == "AzureBlob"
        assert job.destination.display_name == "https://example.blob.core.windows.net/c"

    def test_with_dry_run_returns_a_copy(self, tmp_path):
        config = load_config(write_config(tmp_path / "config.json", [make_job("docs", ["/d"])]))

        forced = config.with_dry_run()

        assert forced.default.dry_run is True
        assert config.default.dry_run is False
        assert forced.jobs[0].name == "docs"

    @pytest.mark.parametrize("value, expected", [(0, 1), (-3, 1), (1, 1), (8, 8)])
    def test_concurrency_is_at_least_one(self, value, expected):
        config = BackupConfig(default=Defaults(concurrency=value))

        assert config.concurrency == expected


class TestEffectiveTier:

    def _job(self, job_tier=None, destination_tier=None):
        azure_blob = {"serviceUri": SERVICE_URI, "container": "c"}
        if destination_tier:
            azure_blob["tier"] = destination_tier
        data = {"destination": {"azureBlob": azure_blob}}
        if job_tier:
            data["tier"] = job_tier
        return BackupJob.model_validate(data)

    def test_job_tier_wins(self):
        job = self._job(job_tier="Hot", destination_tier="Archive")
        assert job.effective_tier(Defaults(tier="Cool")) is StorageTier.HOT

    def test_destination_tier_used_when_job_has_none(self):
        job = self._job(destination_tier="Archive")
        assert job.effective_tier(Defaults(tier="Hot")) is StorageTier.ARCHIVE

    def test_global_default_last(self):
        assert self._job().effective_tier(Defaults(tier="hot")) is StorageTier.HOT

    def test_builtin_default_is_cool(self):
        assert self._job().effective_tier(Defaults()) is StorageTier.COOL
