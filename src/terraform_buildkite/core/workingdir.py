"""Working directory resolution and parallel job partitioning.

Directory listings are sorted by name so that every parallel job of a build
sees the same sequence and the partitions line up across jobs.
"""

import os
import re
from collections.abc import Sequence
from typing import Any, TypeVar

from terraform_buildkite.contracts import ArtifactNotSupportedError, ConfigError
from terraform_buildkite.core.config import DirectoriesSettings, WorkingSettings
from terraform_buildkite.core.logging import get_logger

T = TypeVar("T")


def partition(items: Sequence[T], job_index: int, job_count: int) -> list[T]:
    """Return the contiguous chunk of ``items`` assigned to one job.

    The first ``len(items) % job_count`` jobs receive one extra item, so
    chunk sizes differ by at most one. Invalid job parameters
    (``job_count <= 0`` or ``job_index`` outside ``[0, job_count)``) yield an
    empty list.
    """
    if job_count <= 0 or job_index < 0 or job_index >= job_count:
        return []

    base_size, extra = divmod(len(items), job_count)
    if job_index < extra:
        start = job_index * (base_size + 1)
        size = base_size + 1
    else:
        start = extra * (base_size + 1) + (job_index - extra) * base_size
        size = base_size
    return list(items[start : start + size])


def list_directories(path: str, name_regex: str = "", *, logger: Any = None) -> list[str]:
    """List immediate subdirectories of ``path`` whose name matches ``name_regex``.

    The pattern is searched in the base name only. Non-directories are
    skipped. Results are absolute paths sorted by name.

    Raises:
        ConfigError: If the pattern does not compile or ``path`` cannot be read
    """
    log = logger or get_logger(__name__)
    try:
        regex = re.compile(name_regex)
    except re.error as e:
        log.error("failed to compile regex pattern", name_regex=name_regex, error=str(e))
        raise ConfigError("invalid directory name pattern") from e

    try:
        entries = sorted(os.scandir(path), key=lambda entry: entry.name)
    except OSError as e:
        log.error("failed to read directory", path=path, error=str(e))
        raise ConfigError(f"failed to read directory {path}") from e

    base = os.path.abspath(path)
    dirs: list[str] = []
    skipped_files = 0
    regex_filtered = 0
    for entry in entries:
        if not entry.is_dir():
            skipped_files += 1
            continue
        if not regex.search(entry.name):
            log.debug("directory name does not match regex, skipping", name=entry.name)
            regex_filtered += 1
            continue
        dirs.append(os.path.join(base, entry.name))

    log.debug(
        "completed directory listing",
        path=path,
        found_directories=len(dirs),
        skipped_files=skipped_files,
        regex_filtered=regex_filtered,
    )
    return dirs


def _discover(directories: DirectoriesSettings, log: Any) -> list[str]:
    if directories.parent_directory:
        return list_directories(
            directories.parent_directory, directories.name_regex, logger=log
        )
    if directories.artifact:
        log.warning("artifact handling not implemented yet", artifact=directories.artifact)
        raise ArtifactNotSupportedError("artifact handling not implemented yet")
    log.error("no valid working directory configuration found in directories config")
    raise ConfigError("no valid working directory configuration found")


def resolve(working: WorkingSettings | None, *, logger: Any = None) -> list[str]:
    """Turn a working directory configuration into the directories to process.

    A missing configuration resolves to an empty list, not an error. When
    parallelism is configured, only this job's partition is returned.

    Raises:
        ConfigError: If neither a directory nor directories are configured
        ArtifactNotSupportedError: For artifact-based discovery
    """
    log = logger or get_logger(__name__)

    if working is None:
        log.debug("working directory configuration is absent, nothing to resolve")
        return []

    if working.directory:
        directory = os.path.abspath(working.directory)
        log.debug("using single working directory", directory=directory)
        directories = [directory]
    elif working.directories is not None:
        directories = _discover(working.directories, log)
    else:
        log.error("no valid working directory configuration found")
        raise ConfigError("no valid working directory configuration found")

    parallelism = working.parallelism
    if parallelism is not None and parallelism.is_set:
        assert parallelism.parallel_job is not None  # Validated by is_set
        assert parallelism.parallel_job_count is not None
        selected = partition(
            directories, parallelism.parallel_job, parallelism.parallel_job_count
        )
        log.info(
            "resolved working directories with parallelism",
            parallel_job=parallelism.parallel_job,
            parallel_job_count=parallelism.parallel_job_count,
            selected_directory_count=len(selected),
            total_directory_count=len(directories),
            directories=selected,
        )
        return selected

    log.info(
        "resolved working directories",
        count=len(directories),
        directories=directories,
    )
    return directories
