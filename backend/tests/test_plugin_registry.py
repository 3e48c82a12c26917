"""Tests for PluginRegistry resolution, installation and listing."""
import pytest

from core.exceptions import InstallerError, NoSatisfactoryVersionError, RegistryQueryError
from core.npm_client import InstallOptions
from core.plugin_registry import PluginRegistry
from helpers import FakeNpm, write_package


def engines(range_spec):
    return {"engines": {"gitbook": range_spec}}


def satisfied_by(*ranges):
    """Predicate accepting only the given ranges."""
    return lambda r: r in ranges


class TestResolveVersion:
    """Test resolve_version."""

    @pytest.mark.asyncio
    async def test_picks_highest_compatible(self):
        npm = FakeNpm({
            "1.0.0": engines("ok"),
            "2.0.0": engines("ok"),
            "1.5.0": engines("bad"),
        })
        registry = PluginRegistry(npm=npm, satisfies=satisfied_by("ok"))

        assert await registry.resolve_version("foo") == "2.0.0"
        assert npm.queries == ["gitbook-plugin-foo"]

    @pytest.mark.asyncio
    async def test_skips_newer_incompatible(self):
        npm = FakeNpm({"1.0.0": engines("ok"), "3.0.0": engines("bad")})
        registry = PluginRegistry(npm=npm, satisfies=satisfied_by("ok"))

        assert await registry.resolve_version("foo") == "1.0.0"

    @pytest.mark.asyncio
    async def test_no_declared_range_is_not_found(self):
        """Versions without an engines range are never selected."""
        npm = FakeNpm({"1.0.0": {}, "2.0.0": {"engines": {"node": ">=4"}}, "3.0.0": {"engines": None}})
        registry = PluginRegistry(npm=npm, satisfies=lambda r: True)

        assert await registry.resolve_version("foo") is None

    @pytest.mark.asyncio
    async def test_non_string_range_is_skipped(self):
        """A malformed engines entry makes that version unselectable."""
        npm = FakeNpm({"1.0.0": engines([">=1"]), "0.9.0": engines({"min": "1"}), "0.5.0": engines(">=1.0.0")})
        registry = PluginRegistry(npm=npm)

        assert await registry.resolve_version("foo") == "0.5.0"

    @pytest.mark.asyncio
    async def test_only_non_string_ranges_is_not_found(self):
        registry = PluginRegistry(npm=FakeNpm({"1.0.0": engines([">=1"])}))
        assert await registry.resolve_version("foo") is None

    @pytest.mark.asyncio
    async def test_no_published_versions(self):
        registry = PluginRegistry(npm=FakeNpm({}), satisfies=lambda r: True)
        assert await registry.resolve_version("foo") is None

    @pytest.mark.asyncio
    async def test_semver_not_lexical_ordering(self):
        npm = FakeNpm({"9.0.0": engines("ok"), "10.0.0": engines("ok"), "10.0.0-beta.1": engines("ok")})
        registry = PluginRegistry(npm=npm, satisfies=satisfied_by("ok"))

        assert await registry.resolve_version("foo") == "10.0.0"

    @pytest.mark.asyncio
    async def test_build_metadata_order_is_total(self):
        """Versions differing only in build metadata still resolve deterministically."""
        first = PluginRegistry(
            npm=FakeNpm({"1.0.0+b": engines("ok"), "1.0.0+a": engines("ok")}), satisfies=satisfied_by("ok")
        )
        second = PluginRegistry(
            npm=FakeNpm({"1.0.0+a": engines("ok"), "1.0.0+b": engines("ok")}), satisfies=satisfied_by("ok")
        )

        assert await first.resolve_version("foo") == await second.resolve_version("foo")

    @pytest.mark.asyncio
    async def test_uses_real_engine_ranges(self):
        npm = FakeNpm({
            "1.0.0": engines(">=2.0.0 <3.0.0"),
            "2.0.0": engines(">=3.0.0"),
            "4.0.0": engines(">=4.0.0"),
        })
        registry = PluginRegistry(npm=npm)  # settings engine_version is 3.2.3

        assert await registry.resolve_version("foo") == "2.0.0"

    @pytest.mark.asyncio
    async def test_registry_error_propagates(self):
        class FailingNpm(FakeNpm):
            async def query_versions(self, package_name):
                raise RegistryQueryError("network down", package_name)

        registry = PluginRegistry(npm=FailingNpm(), satisfies=lambda r: True)
        with pytest.raises(RegistryQueryError):
            await registry.resolve_version("foo")


class TestInstallPlugin:
    """Test install_plugin."""

    @pytest.mark.asyncio
    async def test_explicit_version_skips_resolution(self, project):
        npm = FakeNpm({"9.9.9": engines("ok")})
        registry = PluginRegistry(npm=npm, satisfies=lambda r: True)

        result = await registry.install_plugin(project, "foo", "1.2.3")

        assert npm.queries == []
        assert len(npm.installs) == 1
        package_name, version, target_dir, options = npm.installs[0]
        assert (package_name, version, target_dir) == ("gitbook-plugin-foo", "1.2.3", project.root)
        assert options == InstallOptions(quiet=True, prefix=project.root, preload=True)
        assert ("ok", 'plugin "foo" installed with success') in project.log.records
        assert result.version == "1.2.3"
        assert result.package_name == "gitbook-plugin-foo"

    @pytest.mark.asyncio
    async def test_resolves_when_no_version(self, project):
        npm = FakeNpm({"1.0.0": engines("ok"), "2.0.0": engines("ok")})
        registry = PluginRegistry(npm=npm, satisfies=satisfied_by("ok"))

        result = await registry.install_plugin(project, "foo")

        assert npm.queries == ["gitbook-plugin-foo"]
        assert npm.installs[0][1] == "2.0.0"
        assert result.version == "2.0.0"

    @pytest.mark.asyncio
    async def test_no_satisfactory_version(self, project):
        npm = FakeNpm({"1.0.0": engines("bad")})
        registry = PluginRegistry(npm=npm, satisfies=satisfied_by("ok"))

        with pytest.raises(NoSatisfactoryVersionError) as exc_info:
            await registry.install_plugin(project, "foo")

        assert exc_info.value.plugin_name == "foo"
        assert npm.installs == []
        assert not any(level == "ok" for level, _ in project.log.records)

    @pytest.mark.asyncio
    async def test_installer_error_propagates_unchanged(self, project):
        error = InstallerError("disk full", package_name="gitbook-plugin-foo", returncode=1)
        registry = PluginRegistry(npm=FakeNpm(install_error=error), satisfies=lambda r: True)

        with pytest.raises(InstallerError) as exc_info:
            await registry.install_plugin(project, "foo", "1.0.0")

        assert exc_info.value is error
        assert not any(level == "ok" for level, _ in project.log.records)

    @pytest.mark.asyncio
    async def test_prefixed_name_accepted(self, project):
        npm = FakeNpm()
        registry = PluginRegistry(npm=npm, satisfies=lambda r: True)

        await registry.install_plugin(project, "gitbook-plugin-foo", "1.0.0")

        assert npm.installs[0][0] == "gitbook-plugin-foo"

    @pytest.mark.asyncio
    async def test_reinstall_is_not_guarded(self, project):
        npm = FakeNpm()
        registry = PluginRegistry(npm=npm, satisfies=lambda r: True)

        await registry.install_plugin(project, "foo", "1.0.0")
        await registry.install_plugin(project, "foo", "1.0.0")

        assert len(npm.installs) == 2


class TestLinkPlugin:
    """Test link_plugin."""

    def test_logs_link(self, project):
        registry = PluginRegistry(npm=FakeNpm(), satisfies=lambda r: True)
        registry.link_plugin(project, "/src/my-plugin")
        assert project.log.records == [("info", "linking /src/my-plugin")]


class TestListPlugins:
    """Test list_installed and list_plugins."""

    @pytest.mark.asyncio
    async def test_list_installed(self, tmp_path):
        write_package(tmp_path / "node_modules" / "gitbook-plugin-foo", "gitbook-plugin-foo", "1.0.0")
        write_package(tmp_path / "node_modules" / "lodash", "lodash", "4.0.0")
        registry = PluginRegistry(npm=FakeNpm(), satisfies=lambda r: True)

        plugins = await registry.list_installed(tmp_path)

        assert [(p.name, p.version, p.depth) for p in plugins] == [("foo", "1.0.0", 1)]

    @pytest.mark.asyncio
    async def test_list_installed_at_plugin_root(self, tmp_path):
        """Listing a plugin's own directory includes the plugin itself."""
        plugin_root = write_package(tmp_path / "gitbook-plugin-self", "gitbook-plugin-self", "0.2.0")
        registry = PluginRegistry(npm=FakeNpm(), satisfies=lambda r: True)

        plugins = await registry.list_installed(plugin_root)

        assert [(p.name, p.version, p.depth) for p in plugins] == [("self", "0.2.0", 0)]

    @pytest.mark.asyncio
    async def test_project_overrides_defaults(self, tmp_path, project):
        defaults = tmp_path / "defaults"
        write_package(defaults, "gitbook", "3.2.3")
        write_package(defaults / "node_modules" / "gitbook-plugin-foo", "gitbook-plugin-foo", "1.0.0")
        write_package(defaults / "node_modules" / "gitbook-plugin-search", "gitbook-plugin-search", "1.1.0")
        write_package(project.root / "node_modules" / "gitbook-plugin-foo", "gitbook-plugin-foo", "2.0.0")
        registry = PluginRegistry(npm=FakeNpm(), satisfies=lambda r: True, defaults_dir=defaults)

        plugins = await registry.list_plugins(project)

        assert [(p.name, p.version) for p in plugins] == [("foo", "2.0.0"), ("search", "1.1.0")]
        assert plugins[0].path.startswith(str(project.root.resolve()))

    @pytest.mark.asyncio
    async def test_defaults_only(self, tmp_path, project):
        defaults = tmp_path / "defaults"
        write_package(defaults / "node_modules" / "gitbook-plugin-highlight", "gitbook-plugin-highlight", "2.0.2")
        registry = PluginRegistry(npm=FakeNpm(), satisfies=lambda r: True, defaults_dir=defaults)

        plugins = await registry.list_plugins(project)

        assert [p.name for p in plugins] == ["highlight"]
