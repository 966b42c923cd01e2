"""
NutriScan command line.

Usage:
    nutriscan analyze meal.jpg --multi --reference coin --portion 150
    nutriscan history --portion 50
    nutriscan clear-history

Exit codes:
    0 ok, 1 unexpected error, 2 not food / no valid samples,
    3 credential problem, 4 transport or service failure, 5 configuration
"""

from __future__ import annotations

import argparse
import asyncio
import inspect
import json
import mimetypes
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from nutriscan import __version__
from nutriscan.application.estimation_service import NutritionEstimationService
from nutriscan.config import Settings
from nutriscan.domain.estimation.aggregator import ResultAggregator
from nutriscan.domain.estimation.models import (
    DEFAULT_PORTION_PCT,
    ImagePayload,
    ReferenceObject,
    ScaledView,
)
from nutriscan.domain.estimation.portion import scale_result, validate_portion
from nutriscan.domain.estimation.ports import IInferenceClient
from nutriscan.domain.history.store import HistoryStore
from nutriscan.domain.shared.errors import (
    ConfigurationError,
    DomainError,
    InferenceAuthError,
    InferenceServiceError,
    InferenceTransportError,
    InvalidPortionError,
    NotFoodError,
    NoValidSamplesError,
)
from nutriscan.infrastructure.ai.factory import create_inference_client
from nutriscan.infrastructure.storage.factory import create_storage
from nutriscan.logging_config import configure_logging

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_NOT_FOOD = 2
EXIT_AUTH = 3
EXIT_UNAVAILABLE = 4
EXIT_CONFIG = 5


# ═══════════════════════════════════════════════════════════
# COMPOSITION
# ═══════════════════════════════════════════════════════════


class InvalidImageFile(Exception):
    """Image path cannot be turned into a payload."""


def build_service(
    settings: Settings,
    inference_client: Optional[IInferenceClient] = None,
) -> NutritionEstimationService:
    """Wire storage, history and aggregator from settings."""
    client = inference_client or create_inference_client(settings)
    history = HistoryStore(create_storage(settings))
    return NutritionEstimationService(ResultAggregator(client), history)


def read_image(path: Path) -> ImagePayload:
    """
    Load an image file into a payload.

    The MIME type is guessed from the file name.

    Raises:
        InvalidImageFile: If the file is missing, empty or not an image
    """
    mime_type, _ = mimetypes.guess_type(path.name)
    if mime_type is None or not mime_type.startswith("image/"):
        raise InvalidImageFile(f"{path}: not an image file (type {mime_type or 'unknown'})")
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise InvalidImageFile(f"{path}: {exc.strerror or exc}") from exc
    if not data:
        raise InvalidImageFile(f"{path}: file is empty")
    return ImagePayload(data=data, mime_type=mime_type)


# ═══════════════════════════════════════════════════════════
# OUTPUT
# ═══════════════════════════════════════════════════════════


def format_view(view: ScaledView) -> str:
    portion = f" ({view.portion_description})" if view.portion_description else ""
    samples = "sample" if view.sample_count == 1 else "samples"
    lines = [
        f"{view.food_name}{portion} @ {view.portion_pct}%",
        f"  Calories    {view.calories} kcal",
        f"  Protein     {view.protein:.1f} g",
        f"  Carbs       {view.carbs:.1f} g",
        f"  Fat         {view.fat:.1f} g",
        f"  Fiber       {view.fiber:.1f} g",
        f"  Sugar       {view.sugar:.1f} g",
        f"  Confidence  {view.confidence}% ({view.sample_count} {samples})",
    ]
    return "\n".join(lines)


def _emit(views: List[ScaledView], as_json: bool) -> None:
    if as_json:
        print(json.dumps([v.model_dump(mode="json") for v in views], ensure_ascii=False, indent=2))
        return
    for index, view in enumerate(views):
        if index:
            print()
        print(f"[{view.timestamp.astimezone().strftime('%Y-%m-%d %H:%M')}] " + format_view(view))


# ═══════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════


async def _analyze(args: argparse.Namespace, settings: Settings) -> int:
    image = read_image(Path(args.image))
    client = create_inference_client(settings)
    service = build_service(settings, client)
    config = settings.analysis_config(
        multi_sample=args.multi,
        reference_object=ReferenceObject(args.reference) if args.reference else None,
    )

    try:
        result = await service.analyze(image, config)
    finally:
        close = getattr(client, "close", None)
        if close is not None:
            await close()

    _emit([service.view(result, args.portion)], args.json)
    return EXIT_OK


def _history(args: argparse.Namespace, settings: Settings) -> int:
    history = HistoryStore(create_storage(settings))
    entries = history.list()
    if not entries:
        if args.json:
            print("[]")
        else:
            print("No history yet.")
        return EXIT_OK

    _emit([scale_result(entry, args.portion) for entry in entries], args.json)
    return EXIT_OK


def _clear_history(args: argparse.Namespace, settings: Settings) -> int:
    HistoryStore(create_storage(settings)).clear()
    print("History cleared.")
    return EXIT_OK


def _portion(value: str) -> int:
    try:
        pct = int(value)
        validate_portion(pct)
    except (ValueError, InvalidPortionError) as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    return pct


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nutriscan",
        description="Estimate the nutrition of a food photo",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze a food photo")
    analyze.add_argument("image", help="Path to a JPEG/PNG/WebP photo")
    analyze.add_argument(
        "--multi",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Average 3 estimates; --no-multi forces one (default from NUTRISCAN_MULTI_SAMPLE)",
    )
    analyze.add_argument(
        "--reference",
        choices=[r.value for r in ReferenceObject],
        help="Reference object in the photo for size calibration",
    )
    analyze.add_argument(
        "--portion",
        type=_portion,
        default=DEFAULT_PORTION_PCT,
        help="Portion percentage to display (25-200, step 5)",
    )
    analyze.add_argument("--json", action="store_true", help="Print JSON instead of text")
    analyze.set_defaults(handler=_analyze)

    history = subparsers.add_parser("history", help="Show past results, most recent first")
    history.add_argument("--portion", type=_portion, default=DEFAULT_PORTION_PCT)
    history.add_argument("--json", action="store_true", help="Print JSON instead of text")
    history.set_defaults(handler=_history)

    clear = subparsers.add_parser("clear-history", help="Delete all past results")
    clear.set_defaults(handler=_clear_history)

    return parser


def _fail(message: str, code: int) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return code


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point of the nutriscan console script."""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        return _fail(str(exc), EXIT_CONFIG)

    configure_logging(settings.log_level, settings.log_json)

    try:
        if inspect.iscoroutinefunction(args.handler):
            return asyncio.run(args.handler(args, settings))
        return args.handler(args, settings)
    except InvalidImageFile as exc:
        return _fail(str(exc), EXIT_UNEXPECTED)
    except NotFoodError:
        return _fail("Not recognized as food. Please retake the photo.", EXIT_NOT_FOOD)
    except NoValidSamplesError:
        return _fail("Could not recognize the image as food. Try a clearer photo.", EXIT_NOT_FOOD)
    except InferenceAuthError as exc:
        return _fail(f"{exc}. Check NUTRISCAN_API_KEY and try again.", EXIT_AUTH)
    except (InferenceTransportError, InferenceServiceError) as exc:
        return _fail(f"{exc}. This is usually temporary, please retry.", EXIT_UNAVAILABLE)
    except ConfigurationError as exc:
        return _fail(str(exc), EXIT_CONFIG)
    except DomainError as exc:
        logger.error("Command failed", command=args.command, error_type=type(exc).__name__, error=str(exc))
        return _fail(str(exc), EXIT_UNEXPECTED)


if __name__ == "__main__":
    sys.exit(main())
