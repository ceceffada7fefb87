"""No-argument entry point for the scheduled job.

Exit codes: 0 on completion (including per-dam failures), 1 on invalid
configuration, 2 when the history directory is unusable.
"""

import asyncio
import logging

from pydantic import ValidationError

from whiteriver.catalog import load_dam_specs

logger = logging.getLogger(__name__)


def main() -> int:
    try:
        from whiteriver.config import settings
    except ValidationError as exc:
        logging.basicConfig(level=logging.ERROR)
        logger.error("Invalid settings: %s", exc)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    try:
        dams = load_dam_specs(settings.dams_file)
    except (OSError, ValueError) as exc:
        logger.error("Cannot load dam catalog: %s", exc)
        return 1

    from whiteriver.pipeline import run_pipeline

    try:
        report = asyncio.run(run_pipeline(settings, dams))
    except OSError as exc:
        logger.error("History directory %s is not usable: %s", settings.history_dir, exc)
        return 2

    if report.failed_files:
        logger.warning("Completed with failures:\n  %s", "\n  ".join(report.failed_files))
    else:
        logger.info("Completed successfully")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
