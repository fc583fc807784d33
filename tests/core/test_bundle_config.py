"""
Tests for bundle config loading and caching.

Tests cover:
- Parsing config.yaml from a bundle root
- Missing config files (empty mapping, not cached)
- Parse failures surfacing as ConfigLoadError
- Cache identity, staleness until cleared, and isolated caches
- load_path_context() convenience loading
"""
from pathlib import Path

import pytest

from bundle_paths.core.bundle_config import (
    ConfigCache,
    clear_config_cache,
    get_config_cache,
    load_bundle_config,
    load_path_context,
    read_config_file,
)
from bundle_paths.core.exceptions import ConfigLoadError
from bundle_paths.core.settings import PathResolverSettings
from bundle_paths.core.variable_resolver import resolve_path


def write_config(bundle_root: Path, content: str, filename: str = "config.yaml") -> Path:
    config_path = bundle_root / filename
    config_path.write_text(content, encoding="utf-8")
    return config_path


class TestLoadBundleConfig:
    """Tests for load_bundle_config()."""

    def test_parses_yaml(self, settings: PathResolverSettings, bundle_root: Path) -> None:
        """Scalars of every YAML kind are loaded as-is."""
        write_config(
            bundle_root,
            "output_folder: '{project-root}/out'\nuser_name: Bob\nretries: 3\ndebug: true\n",
        )

        config = load_bundle_config(bundle_root)

        assert config["output_folder"] == "{project-root}/out"
        assert config["user_name"] == "Bob"
        assert config["retries"] == 3
        assert config["debug"] is True

    def test_missing_file_returns_empty_mapping(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """A bundle without config.yaml has no variables, which is not an error."""
        config = load_bundle_config(bundle_root)

        assert dict(config) == {}
        assert bundle_root not in get_config_cache()

    def test_missing_file_rechecked(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """A config file created after a failed lookup is picked up."""
        assert dict(load_bundle_config(bundle_root)) == {}

        write_config(bundle_root, "name: later\n")

        assert load_bundle_config(bundle_root)["name"] == "later"

    def test_missing_bundle_directory(
        self, settings: PathResolverSettings, project_root: Path
    ) -> None:
        """A bundle root that does not exist behaves like a missing file."""
        config = load_bundle_config(project_root / "bmad" / "custom" / "bundles" / "ghost")
        assert dict(config) == {}

    def test_empty_file_is_empty_mapping(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        write_config(bundle_root, "")
        assert dict(load_bundle_config(bundle_root)) == {}

    def test_invalid_yaml_raises(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """Malformed YAML surfaces as ConfigLoadError with the parser's diagnostic."""
        write_config(bundle_root, "name: [unclosed\n")

        with pytest.raises(ConfigLoadError, match="Failed to load bundle config") as exc_info:
            load_bundle_config(bundle_root)

        assert exc_info.value.reason == "CONFIG_LOAD_FAILED"
        assert exc_info.value.__cause__ is not None

    def test_non_mapping_document_raises(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """A top-level list is not a variable mapping."""
        write_config(bundle_root, "- a\n- b\n")

        with pytest.raises(ConfigLoadError, match="expected a mapping"):
            load_bundle_config(bundle_root)

    def test_failed_parse_not_cached(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """After fixing a broken file the next call succeeds."""
        write_config(bundle_root, "name: [unclosed\n")
        with pytest.raises(ConfigLoadError):
            load_bundle_config(bundle_root)

        write_config(bundle_root, "name: fixed\n")
        assert load_bundle_config(bundle_root)["name"] == "fixed"

    def test_config_filename_setting(self, project_root: Path, bundle_root: Path) -> None:
        """The config file name comes from settings."""
        write_config(bundle_root, "name: custom\n", filename="bundle.yaml")
        cache = ConfigCache(config_filename="bundle.yaml")

        assert load_bundle_config(bundle_root, cache=cache)["name"] == "custom"


class TestConfigCaching:
    """Tests for cache identity and invalidation."""

    def test_same_object_returned(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """Repeated loads return the identical cached object."""
        write_config(bundle_root, "name: Bob\n")

        first = load_bundle_config(bundle_root)
        second = load_bundle_config(bundle_root)

        assert first is second

    def test_cache_ignores_file_changes(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """Cached configs are not re-read when the file changes."""
        write_config(bundle_root, "name: Bob\n")
        first = load_bundle_config(bundle_root)

        write_config(bundle_root, "name: Alice\n")
        second = load_bundle_config(bundle_root)

        assert second is first
        assert second["name"] == "Bob"

    def test_clear_forces_reread(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """clear_config_cache() makes the next call read the file again."""
        write_config(bundle_root, "name: Bob\n")
        first = load_bundle_config(bundle_root)

        write_config(bundle_root, "name: Alice\n")
        clear_config_cache()
        second = load_bundle_config(bundle_root)

        assert second is not first
        assert second["name"] == "Alice"

    def test_cache_keyed_by_canonical_root(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """Equivalent spellings of a root share one entry."""
        write_config(bundle_root, "name: Bob\n")

        first = load_bundle_config(bundle_root)
        second = load_bundle_config(f"{bundle_root}/./")

        assert first is second
        assert len(get_config_cache()) == 1

    def test_cached_config_read_only(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """Callers cannot mutate a published config."""
        write_config(bundle_root, "name: Bob\n")
        config = load_bundle_config(bundle_root)

        with pytest.raises(TypeError):
            config["name"] = "Eve"  # type: ignore[index]

    def test_isolated_cache(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """A private cache does not touch the process-wide one."""
        write_config(bundle_root, "name: Bob\n")
        cache = ConfigCache()

        config = load_bundle_config(bundle_root, cache=cache)

        assert cache.get(bundle_root) is config
        assert bundle_root in cache
        assert bundle_root not in get_config_cache()

    def test_get_without_load(
        self, settings: PathResolverSettings, bundle_root: Path
    ) -> None:
        """get() never touches the filesystem."""
        write_config(bundle_root, "name: Bob\n")
        cache = ConfigCache()

        assert cache.get(bundle_root) is None

        cache.get_or_load(bundle_root)
        cache.clear()
        assert cache.get(bundle_root) is None
        assert len(cache) == 0


class TestReadConfigFile:
    """Tests for read_config_file(), shared by the cache and the CLI."""

    def test_reads_mapping(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "name: Bob\ncount: 3\n")
        assert read_config_file(path) == {"name": "Bob", "count": 3}

    def test_empty_document(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "")
        assert read_config_file(path) == {}

    def test_missing_file_raises_by_default(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError) as exc_info:
            read_config_file(tmp_path / "absent.yaml")

        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_missing_ok(self, tmp_path: Path) -> None:
        assert read_config_file(tmp_path / "absent.yaml", missing_ok=True) is None

    def test_scalar_document_rejected(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "just a string\n")
        with pytest.raises(ConfigLoadError, match="got str"):
            read_config_file(path)


class TestLoadPathContext:
    """Tests for load_path_context()."""

    def test_context_carries_bundle_config(
        self, settings: PathResolverSettings, bundle_root: Path, project_root: Path
    ) -> None:
        """The returned context resolves the bundle's own variables."""
        write_config(bundle_root, "output_folder: '{project-root}/out'\n")

        ctx = load_path_context("acme")

        assert ctx.bundle_root == str(bundle_root)
        assert dict(ctx.bundle_config) == dict(load_bundle_config(bundle_root))
        assert resolve_path("{config_source}:output_folder/report.md", ctx) == str(
            project_root / "out" / "report.md"
        )

    def test_bundle_without_config(self, settings: PathResolverSettings) -> None:
        ctx = load_path_context("acme", settings=settings)
        assert ctx.config_variables == []
