"""Ornament batch generation script.

Generates one image per style for a motif and writes the PNGs to disk using
the same download filenames as the web client. Honours the usual settings
(API_TYPE, HUGGINGFACE_API_KEY, PROXY_URL, QUOTA_BACKEND, ...).

Usage:
    .venv/bin/python scripts/generate_ornaments.py star
    .venv/bin/python scripts/generate_ornaments.py --random --size vertical --output out/
    .venv/bin/python scripts/generate_ornaments.py "snowman" --placeholder
"""

import argparse
import asyncio
import logging
import sys
from contextlib import AsyncExitStack
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.config import get_settings  # noqa: E402
from core.exceptions import AppException  # noqa: E402
from core.redis import redis_connection  # noqa: E402
from services.generator import create_image_generator  # noqa: E402
from services.ornament_service import OrnamentService  # noqa: E402
from services.prompts import SIZE_OPTIONS  # noqa: E402
from services.providers.base import ImagePayload, get_friendly_error_message  # noqa: E402
from services.quota_service import InMemoryQuotaStore, QuotaService, RedisQuotaStore  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def main(
    motif: str | None,
    size: str,
    use_random: bool,
    output_dir: Path,
    placeholder: bool,
) -> int:
    settings = get_settings()
    if placeholder:
        settings = settings.model_copy(update={"api_type": "placeholder"})

    generator = create_image_generator(settings)

    async with AsyncExitStack() as stack:
        if settings.is_redis_quota:
            client = await stack.enter_async_context(redis_connection())
            store = RedisQuotaStore(client, namespace=settings.quota_namespace)
        else:
            store = InMemoryQuotaStore()
        stack.push_async_callback(generator.close)

        service = OrnamentService(
            generator=generator,
            quota=QuotaService(store=store, max_per_day=settings.max_generations_per_day),
        )

        try:
            batch = await service.generate_batch(motif=motif, size=size, use_random=use_random)
        except AppException as e:
            logger.error(get_friendly_error_message(f"{e.error}: {e.message}"))
            return 1

    output_dir.mkdir(parents=True, exist_ok=True)
    for image in batch.images:
        path = output_dir / image.filename
        path.write_bytes(ImagePayload.from_data_url(image.image).data)
        logger.info("  %s -> %s", image.style_name, path)

    logger.info(
        "Generated %d images for %r (%d/%d generations left today)",
        len(batch.images),
        batch.motif,
        batch.quota.remaining,
        batch.quota.limit,
    )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate Christmas ornament images")
    parser.add_argument("motif", nargs="?", default=None, help="Motif to render, e.g. 'star'")
    parser.add_argument(
        "--random",
        action="store_true",
        help="Pick one of the built-in motifs instead",
    )
    parser.add_argument(
        "--size",
        choices=[s.value for s in SIZE_OPTIONS],
        default="square",
        help="Output size (default: square)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("ornaments"),
        help="Directory to write PNGs into (default: ./ornaments)",
    )
    parser.add_argument(
        "--placeholder",
        action="store_true",
        help="Render procedural placeholders without calling any model",
    )
    args = parser.parse_args()

    if not args.random and not args.motif:
        parser.error("a motif is required unless --random is given")

    sys.exit(
        asyncio.run(
            main(
                motif=args.motif,
                size=args.size,
                use_random=args.random,
                output_dir=args.output,
                placeholder=args.placeholder,
            )
        )
    )
