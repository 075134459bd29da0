"""
wavedev.build - Build invocation, single-flight guard, artifact discovery and
sidecar caching.
"""

from wavedev.build.guard import BuildGuard
from wavedev.build.invoker import (
    DEFAULT_BUILD_COMMAND,
    BuildInvoker,
    BuildResult,
    Diagnostic,
    parse_diagnostics,
)
from wavedev.build.artifacts import (
    find_plugin_library,
    resolve_debug_dir,
    read_package_name,
    read_crate_name,
    library_extension,
    copy_to_temp,
    remove_temp_copy,
)
from wavedev.build.config import DevConfig, build_config, detect_project, load_config_file
from wavedev.build.caching import read_cached_params, write_cached_params, sidecar_path

__all__ = [
    "BuildGuard",
    "DEFAULT_BUILD_COMMAND",
    "BuildInvoker",
    "BuildResult",
    "Diagnostic",
    "parse_diagnostics",
    "find_plugin_library",
    "resolve_debug_dir",
    "read_package_name",
    "read_crate_name",
    "library_extension",
    "copy_to_temp",
    "remove_temp_copy",
    "DevConfig",
    "build_config",
    "detect_project",
    "load_config_file",
    "read_cached_params",
    "write_cached_params",
    "sidecar_path",
]
