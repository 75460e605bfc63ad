"""Example of how to run the enrichment pass over a rendered post."""

import argparse
import logging
from pathlib import Path

from rich import print as rprint
from rich.console import Console
from rich.traceback import install

from postenrich import (
    Attachment,
    Document,
    HttpImageProber,
    InMemoryAttachmentStore,
    OEmbedService,
    PostProcessor,
    ProcessOptions,
    ProcessorConfig,
)

install(show_locals=True)

console = Console()


def main():
    """Main function."""
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Post enrichment example.")
    parser.add_argument("html", type=Path, help="File holding rendered post HTML.")
    parser.add_argument("--base-url", default="", help="Site base URL.")
    parser.add_argument(
        "--upload",
        action="append",
        default=[],
        metavar="URL=FILENAME",
        help="Register a known upload; may be repeated.",
    )
    parser.add_argument("--crawl", action="store_true", help="Probe remote images.")
    parser.add_argument("--invalidate", action="store_true", help="Refetch embeds.")
    args = parser.parse_args()

    # Environment variables first, flags on top
    env = ProcessorConfig.from_env()
    config = ProcessorConfig(
        debug=True,
        crawl_images=args.crawl or env.crawl_images,
        base_url=args.base_url or env.base_url,
        max_workers=env.max_workers,
        request_timeout=env.request_timeout,
    )

    store = InMemoryAttachmentStore(base_url=config.base_url)
    for i, entry in enumerate(args.upload, start=1):
        url, _, filename = entry.partition("=")
        store.add(Attachment(id=i, url=url, original_filename=filename or None))

    processor = PostProcessor(
        store,
        embed_service=OEmbedService(timeout=config.request_timeout),
        prober=HttpImageProber(timeout=config.request_timeout),
        config=config,
    )
    document = Document(id=1, html=args.html.read_text(encoding="utf-8"))
    result = processor.process(
        document, ProcessOptions(invalidate_embeds=args.invalidate)
    )

    console.rule("html")
    rprint(result.html)
    if result.image_url:
        rprint(f"cover image: {result.image_url}")


if __name__ == "__main__":
    main()
