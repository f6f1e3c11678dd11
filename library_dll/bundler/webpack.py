"""External bundler invocation.

Runs webpack as a subprocess with a generated DLL config and reports its
errors and warnings.

Contract:
- Inputs: BuildInvocation, BundleDescriptor, forwarded module rules
- Outputs: BundlerReport (errors, warnings)
- Side Effects: Writes <name>.js and <name>-manifest.json into the output
  directory (done by webpack), creates a temporary config file
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import tempfile
from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any
from typing import Protocol

from ..errors import BuildError
from ..models.bundle import BundleDescriptor
from .invocation import BuildInvocation

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "webpack.dll.config.js"

_REGEX_FLAGS = (
    (re.IGNORECASE, "i"),
    (re.MULTILINE, "m"),
    (re.DOTALL, "s"),
)


@dataclass
class BundlerReport:
    """Diagnostics from one bundler run."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class Bundler(Protocol):
    """Compiles a dependency set into a standalone bundle plus export manifest."""

    async def compile(
        self,
        invocation: BuildInvocation,
        descriptor: BundleDescriptor,
        module: Mapping[str, Any] | None = None,
    ) -> BundlerReport: ...


def to_js(value: Any) -> str:
    """Render a Python value as a JavaScript expression.

    Compiled regular expressions become RegExp objects so that module rules
    like `{"test": re.compile(r"\\.css$")}` survive the trip.

    Raises:
        TypeError: If a value has no JavaScript equivalent
    """
    if isinstance(value, re.Pattern):
        flags = "".join(flag for bit, flag in _REGEX_FLAGS if value.flags & bit)
        return f"new RegExp({json.dumps(value.pattern)}, {json.dumps(flags)})"
    if isinstance(value, Path):
        return json.dumps(str(value))
    if isinstance(value, Mapping):
        items = ", ".join(f"{json.dumps(str(key))}: {to_js(item)}" for key, item in value.items())
        return "{" + items + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(to_js(item) for item in value) + "]"
    return json.dumps(value)


def render_dll_config(
    invocation: BuildInvocation,
    descriptor: BundleDescriptor,
    module: Mapping[str, Any] | None = None,
) -> str:
    """Render the webpack config that builds the library bundle.

    `webpack` is resolved from the project so the project's own version
    is used.

    Args:
        invocation: Entry map for this build
        descriptor: Bundle names and locations
        module: Module rules forwarded unchanged

    Returns:
        CommonJS module source
    """
    output = {
        "path": descriptor.output_directory,
        "filename": "[name].js",
        "library": "[name]",
    }
    dll_options = {
        "path": descriptor.manifest_file_path,
        "name": "[name]",
        "context": descriptor.base,
    }
    return "\n".join(
        [
            "// Generated by library-dll. Do not edit.",
            f"const webpack = require(require.resolve('webpack', {{ paths: [{to_js(descriptor.base)}] }}));",
            "",
            "module.exports = {",
            f"  context: {to_js(descriptor.base)},",
            f"  entry: {to_js(invocation.to_dict())},",
            f"  output: {to_js(output)},",
            f"  module: {to_js(module or {})},",
            f"  plugins: [new webpack.DllPlugin({to_js(dll_options)})],",
            "};",
            "",
        ]
    )


def _diagnostic_text(item: Any) -> str:
    # webpack 4 reports plain strings, webpack 5 reports objects
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping):
        message = str(item.get("message", item))
        module_name = item.get("moduleName")
        return f"{module_name}: {message}" if module_name else message
    return str(item)


def _extract_json(stdout: str) -> dict | None:
    start = stdout.find("{")
    if start < 0:
        return None
    try:
        data = json.loads(stdout[start:])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def parse_stats(stdout: str, stderr: str, returncode: int) -> BundlerReport:
    """Turn webpack's `--json` output into a report.

    Args:
        stdout: Process standard output (stats JSON)
        stderr: Process standard error
        returncode: Process exit code

    Returns:
        Report with error and warning texts

    Raises:
        BuildError: If the process failed without producing stats
    """
    stats = _extract_json(stdout)
    if stats is None:
        if returncode != 0:
            detail = stderr.strip() or stdout.strip() or f"exit code {returncode}"
            raise BuildError(f"Bundler exited with code {returncode}", [detail])
        return BundlerReport()

    report = BundlerReport(
        errors=[_diagnostic_text(item) for item in stats.get("errors", [])],
        warnings=[_diagnostic_text(item) for item in stats.get("warnings", [])],
    )
    if returncode != 0 and not report.errors:
        report.errors.append(stderr.strip() or f"Bundler exited with code {returncode}")
    return report


class WebpackBundler:
    """Bundler that shells out to the webpack CLI.

    Example:
        >>> bundler = WebpackBundler(["npx", "webpack"])
        >>> report = await bundler.compile(invocation, descriptor)
        >>> report.ok
        True
    """

    def __init__(self, command: Sequence[str] = ("npx", "webpack")) -> None:
        """Initialize webpack bundler.

        Args:
            command: Command that runs the webpack CLI
        """
        self.command = list(command)

    async def compile(
        self,
        invocation: BuildInvocation,
        descriptor: BundleDescriptor,
        module: Mapping[str, Any] | None = None,
    ) -> BundlerReport:
        """Run webpack once for the given entry map.

        Raises:
            BuildError: If webpack cannot be started or fails without stats
        """
        try:
            config_text = render_dll_config(invocation, descriptor, module)
        except TypeError as e:
            raise BuildError(f"Module rules cannot be passed to the bundler: {e}") from e

        with tempfile.TemporaryDirectory(prefix="library-dll-") as tmp_dir:
            config_path = Path(tmp_dir) / CONFIG_FILE_NAME
            config_path.write_text(config_text, encoding="utf-8")

            command = [*self.command, "--config", str(config_path), "--json"]
            logger.debug(f"Running bundler: {' '.join(command)}")
            try:
                proc = await asyncio.create_subprocess_exec(
                    *command,
                    cwd=str(descriptor.base),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as e:
                raise BuildError(f"Bundler command not found: {self.command[0]}") from e
            except OSError as e:
                raise BuildError(f"Bundler command could not be started: {self.command[0]}: {e}") from e
            stdout, stderr = await proc.communicate()

        return parse_stats(
            stdout.decode(errors="replace"),
            stderr.decode(errors="replace"),
            proc.returncode if proc.returncode is not None else 0,
        )
