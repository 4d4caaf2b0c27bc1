"""Runs collectors and diagnosers and bundles their data."""

from __future__ import annotations

import io
import logging
import zipfile
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Sequence

logger = logging.getLogger(__name__)


def _run_collector(collector, export: Callable[[Any], None]) -> None:
    logger.info("Collector: %s, collect data", collector.name)
    try:
        collector.collect()
    except Exception as error:
        logger.warning("Collector: %s, collect data failed: %s", collector.name, error)
        return
    logger.info("Collector: %s, export data", collector.name)
    try:
        export(collector)
    except Exception as error:
        logger.warning("Collector: %s, export data failed: %s", collector.name, error)


def _run_diagnoser(diagnoser, export: Callable[[Any], None]) -> None:
    logger.info("Diagnoser: %s, diagnose data", diagnoser.name)
    try:
        diagnoser.diagnose()
    except Exception as error:
        logger.warning("Diagnoser: %s, diagnose data failed: %s", diagnoser.name, error)
        return
    logger.info("Diagnoser: %s, export data", diagnoser.name)
    try:
        export(diagnoser)
    except Exception as error:
        logger.warning("Diagnoser: %s, export data failed: %s", diagnoser.name, error)


def _run_all(worker, items: Sequence[Any], export) -> None:
    if not items:
        return
    with ThreadPoolExecutor(max_workers=len(items)) as pool:
        for future in [pool.submit(worker, item, export) for item in items]:
            future.result()


def run_producers(
    collectors: Iterable[Any],
    diagnosers: Iterable[Any],
    export: Callable[[Any], None],
) -> list[Any]:
    """Run supported collectors concurrently, then the diagnosers, exporting each one.

    Returns the data producers in order: supported collectors, then all diagnosers.
    """
    supported = []
    for collector in collectors:
        try:
            collector.check_supported()
        except Exception as error:
            logger.info("Skipping unsupported collector %s: %s", collector.name, error)
            continue
        supported.append(collector)

    _run_all(_run_collector, supported, export)

    diagnoser_list = list(diagnosers)
    _run_all(_run_diagnoser, diagnoser_list, export)

    return supported + diagnoser_list


def _read_value(value) -> bytes:
    with value.open() as stream:
        data = stream.read()
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


def zip_producers(producers: Iterable[Any]) -> bytes:
    """Return a zip archive holding every data value as ``<producer name>/<key>``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for producer in producers:
            for key, value in sorted(producer.get_data().items()):
                archive.writestr(f"{producer.name}/{key}", _read_value(value))
    return buffer.getvalue()