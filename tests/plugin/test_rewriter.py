"""Tests for host configuration rewriting."""

import asyncio
from pathlib import Path
from types import MappingProxyType

import pytest

from library_dll.cdn.resolver import CdnLibrary
from library_dll.config.settings import LibrarySettings
from library_dll.errors import ConfigurationError
from library_dll.plugin.hooks import ChangeWatcherHook
from library_dll.plugin.hooks import DllReferenceHook
from library_dll.plugin.hooks import HtmlInjectorHook
from library_dll.plugin.rewriter import BuildRewriter
from library_dll.plugin.rewriter import merge_content_base
from library_dll.plugin.rewriter import merge_externals
from library_dll.plugin.rewriter import prepare
from library_dll.plugin.rewriter import watch_descriptor_entry
from library_dll.plugin.session import BundleSession


class FakeCdnResolver:
    """Resolver double serving every library with a configured global."""

    def __init__(self, globals: dict[str, str]) -> None:
        self.globals = globals
        self.requests: list[tuple[str, str]] = []

    async def resolve(self, name: str, version_range: str) -> CdnLibrary | None:
        self.requests.append((name, version_range))
        if name not in self.globals:
            return None
        return CdnLibrary(name=name, url=f"https://cdn.test/{name}.js", global_name=self.globals[name])


@pytest.fixture
def rewriter(session: BundleSession) -> BuildRewriter:
    return BuildRewriter(session)


@pytest.fixture
def host_config(project_dir: Path) -> dict:
    return {
        "entry": "./src/index.js",
        "plugins": ["host-plugin"],
        "devServer": {"port": 8080},
        "library": {"base": str(project_dir)},
    }


@pytest.mark.unit
class TestMergeContentBase:
    """Test merge_content_base()."""

    def test_string_becomes_list(self, tmp_path: Path) -> None:
        merged = merge_content_base({"contentBase": "public"}, tmp_path)
        assert merged["contentBase"] == ["public", str(tmp_path)]

    def test_list_is_appended(self, tmp_path: Path) -> None:
        merged = merge_content_base({"contentBase": ["public", "static"]}, tmp_path)
        assert merged["contentBase"] == ["public", "static", str(tmp_path)]

    def test_missing_becomes_single_item(self, tmp_path: Path) -> None:
        assert merge_content_base(None, tmp_path) == {"contentBase": [str(tmp_path)]}

    def test_other_options_kept(self, tmp_path: Path) -> None:
        merged = merge_content_base({"port": 3000}, tmp_path)
        assert merged["port"] == 3000


class TestWatchDescriptorEntry:
    """Test watch_descriptor_entry()."""

    @pytest.mark.asyncio
    async def test_string_entry(self) -> None:
        assert await watch_descriptor_entry("./index.js", Path("/app/package.json")) == [
            "./index.js",
            "/app/package.json",
        ]

    @pytest.mark.asyncio
    async def test_list_entry(self) -> None:
        entry = await watch_descriptor_entry(["./a.js", "./b.js"], Path("/app/package.json"))
        assert entry == ["./a.js", "./b.js", "/app/package.json"]

    @pytest.mark.asyncio
    async def test_list_entry_already_watching(self) -> None:
        entry = await watch_descriptor_entry(["./a.js", "/app/package.json"], Path("/app/package.json"))
        assert entry == ["./a.js", "/app/package.json"]

    @pytest.mark.asyncio
    async def test_mapping_entry_applies_to_every_chunk(self) -> None:
        entry = await watch_descriptor_entry({"main": "./main.js", "admin": ["./admin.js"]}, Path("/app/package.json"))
        assert entry == {
            "main": ["./main.js", "/app/package.json"],
            "admin": ["./admin.js", "/app/package.json"],
        }

    @pytest.mark.asyncio
    async def test_entry_descriptor_import(self) -> None:
        entry = await watch_descriptor_entry(
            {"main": {"import": "./main.js", "dependOn": "shared"}}, Path("/app/package.json")
        )
        assert entry == {"main": {"import": ["./main.js", "/app/package.json"], "dependOn": "shared"}}

    @pytest.mark.asyncio
    async def test_callable_entry(self) -> None:
        seen = []

        def entry(descriptor_path: str) -> str:
            seen.append(descriptor_path)
            return "./index.js"

        result = await watch_descriptor_entry(entry, Path("/app/package.json"))

        assert seen == ["/app/package.json"]
        assert result == ["./index.js", "/app/package.json"]

    @pytest.mark.asyncio
    async def test_async_callable_entry(self) -> None:
        async def entry(descriptor_path: str) -> list[str]:
            return ["./index.js"]

        assert await watch_descriptor_entry(entry, Path("/app/package.json")) == [
            "./index.js",
            "/app/package.json",
        ]

    @pytest.mark.asyncio
    async def test_no_entry(self) -> None:
        assert await watch_descriptor_entry(None, Path("/app/package.json")) is None


@pytest.mark.unit
def test_merge_externals_shapes() -> None:
    additions = {"react": "React"}

    assert merge_externals(None, additions) == {"react": "React"}
    assert merge_externals({"jquery": "jQuery"}, additions) == {"jquery": "jQuery", "react": "React"}
    assert merge_externals(["fs"], additions) == ["fs", {"react": "React"}]
    assert merge_externals("fs", additions) == ["fs", {"react": "React"}]
    assert merge_externals("fs", {}) == "fs"


class TestBuildRewriter:
    """Test BuildRewriter.prepare()."""

    @pytest.mark.asyncio
    async def test_prepare_rewrites_config(self, rewriter: BuildRewriter, host_config: dict) -> None:
        config = await rewriter.prepare(host_config)
        descriptor = rewriter.descriptor

        assert isinstance(config, MappingProxyType)
        assert "library" not in config
        assert config["devServer"] == {"port": 8080, "contentBase": [str(descriptor.output_directory)]}
        assert config["entry"] == ["./src/index.js", str(descriptor.descriptor_file_path)]

        plugins = config["plugins"]
        assert plugins[0] == "host-plugin"
        assert [type(plugin) for plugin in plugins[1:]] == [DllReferenceHook, HtmlInjectorHook, ChangeWatcherHook]
        assert plugins[2].references == ["vendor.js"]

    @pytest.mark.asyncio
    async def test_prepare_does_not_modify_input(self, rewriter: BuildRewriter, host_config: dict) -> None:
        snapshot = {**host_config, "plugins": list(host_config["plugins"]), "devServer": dict(host_config["devServer"])}

        await rewriter.prepare(host_config)

        assert host_config == snapshot

    @pytest.mark.asyncio
    async def test_prepare_result_is_read_only(self, rewriter: BuildRewriter, host_config: dict) -> None:
        config = await rewriter.prepare(host_config)

        with pytest.raises(TypeError):
            config["entry"] = "./other.js"  # type: ignore[index]

    @pytest.mark.asyncio
    async def test_repeated_prepare_builds_once(self, rewriter: BuildRewriter, host_config: dict, bundler) -> None:
        await rewriter.prepare(host_config)
        await rewriter.prepare(host_config)

        assert len(bundler.calls) == 1

    @pytest.mark.asyncio
    async def test_host_module_rules_forwarded(self, rewriter: BuildRewriter, host_config: dict, bundler) -> None:
        rules = {"rules": [{"test": "\\.js$", "loader": "babel-loader"}]}

        await rewriter.prepare({**host_config, "module": rules})

        assert bundler.modules == [rules]

    @pytest.mark.asyncio
    async def test_missing_descriptor_aborts(self, rewriter: BuildRewriter, host_config: dict, bundler) -> None:
        rewriter.descriptor.descriptor_file_path.unlink()

        with pytest.raises(ConfigurationError):
            await rewriter.prepare(host_config)

        assert bundler.calls == []

    @pytest.mark.asyncio
    async def test_production_mode_uses_cdn(self, project_dir: Path, bundler) -> None:
        settings = LibrarySettings(base=str(project_dir), mode="production")
        resolver = FakeCdnResolver({"react": "React"})
        rewriter = BuildRewriter(BundleSession(settings, bundler), resolver)

        config = await rewriter.prepare({"entry": "./src/index.js", "externals": {"jquery": "jQuery"}})

        assert bundler.calls == []
        assert sorted(resolver.requests) == [("lodash", "^4.17.0"), ("react", "^16.0.0")]
        assert config["externals"] == {"jquery": "jQuery", "react": "React"}
        assert config["entry"] == "./src/index.js"
        (injector,) = config["plugins"]
        assert injector.references == ["https://cdn.test/react.js"]


@pytest.mark.asyncio
async def test_module_prepare_reads_library_options(host_config: dict, bundler) -> None:
    host_config["library"]["dllName"] = "libs"

    config = await prepare(host_config, bundler=bundler)

    assert bundler.calls == [{"libs": ["react", "lodash"]}]
    assert config["plugins"][2].references == ["libs.js"]


@pytest.mark.asyncio
async def test_concurrent_prepare_builds_once(rewriter: BuildRewriter, host_config: dict, bundler) -> None:
    configs = await asyncio.gather(*(rewriter.prepare(host_config) for _ in range(3)))

    assert len(bundler.calls) == 1
    assert all("library" not in config for config in configs)


@pytest.mark.asyncio
async def test_concurrent_module_prepare_builds_once(host_config: dict, bundler) -> None:
    bundler.gate = asyncio.Event()

    first = asyncio.create_task(prepare(host_config, bundler=bundler))
    second = asyncio.create_task(prepare(host_config, bundler=bundler))
    async with asyncio.timeout(5):
        while not bundler.calls:
            await asyncio.sleep(0.001)
    await asyncio.sleep(0.01)
    bundler.gate.set()
    configs = await asyncio.gather(first, second)

    assert len(bundler.calls) == 1
    assert all(len(config["plugins"]) == 4 for config in configs)


@pytest.mark.asyncio
async def test_prepare_without_dependencies_registers_only_watcher(host_config: dict, bundler, write_package) -> None:
    write_package({})

    config = await prepare(host_config, bundler=bundler)

    assert bundler.calls == []
    plugins = config["plugins"]
    assert plugins[0] == "host-plugin"
    assert [type(plugin) for plugin in plugins[1:]] == [ChangeWatcherHook]
    assert config["entry"][-1].endswith("package.json")
