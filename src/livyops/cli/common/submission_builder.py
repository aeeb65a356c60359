"""Submission construction utilities.

Translates CLI arguments into a BatchSubmission, centralizing validation of
the ``key=value`` Spark configuration pairs.
"""

from typing import Iterable

from livyops.core.models import BatchSubmission


def parse_conf_pairs(pairs: Iterable[str]) -> dict[str, str]:
    """
    Parse ``key=value`` strings into a mapping.

    Raises:
        ValueError: If an entry does not follow the `key=value` format.
    """
    conf: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Invalid conf entry: '{pair}' (expected key=value)")
        key, value = pair.split("=", 1)
        if not key.strip():
            raise ValueError(f"Invalid conf entry: '{pair}' (empty key)")
        conf[key.strip()] = value
    return conf


def build_submission(
    *,
    file: str,
    class_name: str | None,
    args: Iterable[str],
    jars: Iterable[str],
    py_files: Iterable[str],
    conf: Iterable[str],
    name: str | None,
    queue: str | None,
) -> BatchSubmission:
    """
    Build a BatchSubmission from user-provided options.

    Args:
        file: Application file (jar or Python script) on cluster storage.
        class_name: Main class for JVM applications.
        args: Application arguments, in order.
        jars: Extra jars.
        py_files: Extra Python files.
        conf: Spark configuration entries in the form `key=value`.
        name: Batch name.
        queue: YARN queue.

    Raises:
        ValueError: If the file is empty or a conf entry is malformed.
    """
    return BatchSubmission(
        file=file,
        class_name=class_name,
        args=tuple(args),
        jars=tuple(jars),
        py_files=tuple(py_files),
        conf=parse_conf_pairs(conf),
        name=name,
        queue=queue,
    )
