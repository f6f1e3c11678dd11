"""
Shared pytest fixtures for library_dll tests.

Provides fixtures for:
- Temporary projects with a package.json
- A fake bundler that writes bundle and manifest files without webpack
- Settings and sessions pointing at the temporary project
"""

import asyncio
import json
import os
from collections.abc import Callable
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from library_dll.bundler.invocation import BuildInvocation
from library_dll.bundler.webpack import BundlerReport
from library_dll.config.settings import LibrarySettings
from library_dll.models.bundle import BundleDescriptor
from library_dll.plugin.session import BundleSession

DEFAULT_DEPENDENCIES = {"react": "^16.0.0", "lodash": "^4.17.0"}


class FakeBundler:
    """Bundler double that writes the files webpack would write.

    Attributes:
        calls: Entry maps of every compile() call
        errors: Errors to report (non-empty means compile failure)
        warnings: Warnings to report
        write_manifest: Whether to write the export manifest
        gate: Optional event compile() waits on before finishing
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, list[str]]] = []
        self.modules: list[Mapping[str, Any] | None] = []
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.write_manifest = True
        self.gate: asyncio.Event | None = None

    async def compile(
        self,
        invocation: BuildInvocation,
        descriptor: BundleDescriptor,
        module: Mapping[str, Any] | None = None,
    ) -> BundlerReport:
        self.calls.append(invocation.to_dict())
        self.modules.append(module)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

        if self.errors:
            return BundlerReport(errors=list(self.errors), warnings=list(self.warnings))

        descriptor.asset_file_path.write_text("var vendor = {};\n", encoding="utf-8")
        if self.write_manifest:
            content = {
                f"./node_modules/{name}/index.js": {"id": index, "buildMeta": {}}
                for index, name in enumerate(invocation.entries())
            }
            manifest = {"name": descriptor.bundle_name, "content": content}
            descriptor.manifest_file_path.write_text(json.dumps(manifest), encoding="utf-8")
        return BundlerReport(warnings=list(self.warnings))


@pytest.fixture
def write_package(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Return a function that (re)writes package.json in the project."""

    def _write(dependencies: dict[str, str]) -> Path:
        path = tmp_path / "package.json"
        path.write_text(json.dumps({"name": "app", "dependencies": dependencies}), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def project_dir(tmp_path: Path, write_package) -> Path:
    """Project root with a package.json declaring two dependencies."""
    write_package(DEFAULT_DEPENDENCIES)
    return tmp_path


@pytest.fixture
def bundler() -> FakeBundler:
    return FakeBundler()


@pytest.fixture
def settings(project_dir: Path) -> LibrarySettings:
    return LibrarySettings(base=str(project_dir))


@pytest.fixture
def session(settings: LibrarySettings, bundler: FakeBundler) -> BundleSession:
    return BundleSession(settings, bundler)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep LIBRARY_DLL_* variables of the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("LIBRARY_DLL_"):
            monkeypatch.delenv(key)
