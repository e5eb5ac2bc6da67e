import argparse
import sys

from iiif_citation_core import __version__
from iiif_citation_core.catalog import citations_to_catalog_items
from iiif_citation_core.config_manager import get_config_manager
from iiif_citation_core.logger import get_logger, setup_logging
from iiif_citation_core.pipeline import init_converter
from iiif_citation_core.upload import CatalogUploadError, upload_catalog_items
from iiif_citation_core.utils import dump_json, load_json, save_json

logger = get_logger(__name__)

EPILOG = """\
examples:
  iiif-citation https://example.org/iiif/manifest.json
  cat urls.txt | iiif-citation --format zotero --out items.json
  iiif-citation --csl items_csl.json --out zotero.json
  iiif-citation <url> --post-webapi --api-user 123456 --api-key KEY
"""


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iiif-citation",
        description="Convert IIIF manifests to CSL-JSON or Zotero item JSON",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("urls", nargs="*", help="IIIF manifest URLs (more may be piped on stdin, one per line)")
    parser.add_argument("-o", "--out", help="Write the JSON array to FILE instead of stdout")
    parser.add_argument(
        "--format",
        choices=("csl", "zotero"),
        default="csl",
        help="Output CSL-JSON (default) or Zotero item JSON",
    )
    parser.add_argument("--csl", metavar="FILE", help="Read CSL-JSON from FILE instead of converting manifest URLs")
    parser.add_argument("--sniff", metavar="PAGE_URL", help="Also convert manifests linked from this HTML page")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar on stderr")

    parser.add_argument("--post-webapi", action="store_true", help="Also POST the Zotero items to the Zotero Web API")
    parser.add_argument("--api-user", help="Zotero user id for the Web API upload")
    parser.add_argument("--api-key", help="Zotero API key for the Web API upload")
    return parser


def read_stdin_urls(stream=None) -> list[str]:
    """Read one URL per line from a piped stdin; blank lines are ignored."""
    stream = stream or sys.stdin
    if stream is None or stream.isatty():
        return []
    return [line.strip() for line in stream.read().splitlines() if line.strip()]


def _load_csl_file(path: str) -> list:
    data = load_json(path)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return [data]
    raise ValueError("Top-level JSON is neither array nor object.")


def _collect_urls(args: argparse.Namespace, converter) -> list[str]:
    urls = list(args.urls) + read_stdin_urls()
    if args.sniff:
        sniffed = converter.sniff_page(args.sniff)
        urls.extend(sniffed.manifest_urls)
    return urls


def _write_output(items: list, out_file: str | None) -> None:
    indent = int(get_config_manager().get_setting("output.indent", 2))
    if out_file:
        save_json(out_file, items, indent=indent)
        logger.info("Wrote %d item(s) to %s", len(items), out_file)
    else:
        sys.stdout.write(dump_json(items, indent=indent) + "\n")


def _handle_upload(args: argparse.Namespace, items: list) -> bool:
    cm = get_config_manager()
    api_user = args.api_user or str(cm.get_setting("upload.user_id", "") or "")
    api_key = args.api_key or cm.get_api_key("zotero")
    if not api_user or not api_key:
        print("Error: --post-webapi requires --api-user and --api-key.", file=sys.stderr)
        return False
    if not items:
        print("No items to upload; skipped the Zotero Web API call.", file=sys.stderr)
        return True
    try:
        upload_catalog_items(api_user, api_key, items)
    except CatalogUploadError as exc:
        logger.error("Zotero upload failed: %s", exc)
        return False
    print(f"Uploaded {len(items)} item(s) to Zotero Web API (user {api_user}).", file=sys.stderr)
    return True


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code."""
    setup_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)
    zotero_output = args.format == "zotero" or bool(args.csl) or args.post_webapi
    exit_code = 0

    try:
        converter = init_converter(timeout=args.timeout)

        if args.csl:
            try:
                records = _load_csl_file(args.csl)
            except (OSError, ValueError) as exc:
                print(f"Error: could not read CSL JSON from '{args.csl}': {exc}", file=sys.stderr)
                return 1
        else:
            urls = _collect_urls(args, converter)
            if not urls:
                parser.print_usage(sys.stderr)
                return 1
            batch = converter.run_batch(urls, progress=args.progress)
            records = batch.records
            for failure in batch.failures:
                print(f"Error processing {failure.url}: {failure.error}", file=sys.stderr)
            print(batch.summary(), file=sys.stderr)
            if batch.failed or not batch.succeeded:
                exit_code = 1

        items = citations_to_catalog_items(records) if zotero_output else records
        _write_output(items, args.out)

        if zotero_output:
            print(f"Converted {len(items)} CSL item(s) into Zotero JSON item(s).", file=sys.stderr)
        if args.post_webapi and not _handle_upload(args, items):
            exit_code = 1
    except Exception as e:
        logger.exception("Fatal error during CLI execution")
        print(f"\nFatal error: {e}", file=sys.stderr)
        return 1

    return exit_code


def run() -> None:
    """Console-script wrapper around `main`."""
    sys.exit(main())


if __name__ == "__main__":
    run()
