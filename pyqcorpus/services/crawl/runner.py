from __future__ import annotations

import argparse
import json
import logging
from typing import Optional

from pyqcorpus import config
from pyqcorpus.db.neo4j_connector import close_driver
from pyqcorpus.services.corpus.cleanup import CorpusCleanup, summarize
from pyqcorpus.services.corpus.dedup import deduplicate
from pyqcorpus.services.corpus.store import get_question_store

from .base import CrawlConfig
from .frontier import check_root, crawl


def run_crawl(args: argparse.Namespace, store) -> dict:
    cfg = CrawlConfig(
        root=args.root,
        exam=args.exam,
        level=args.level or "",
        paper=args.paper or "",
        theme=args.theme,
        year_fallback=args.year_fallback,
        max_depth=args.max_depth,
        max_pages=args.max_pages,
    )
    return crawl(cfg, store).to_dict()


def run_dedup(args: argparse.Namespace, store) -> dict:
    stats = deduplicate(store, dry_run=not args.apply)
    return {"dryRun": not args.apply, "stats": stats.model_dump(by_alias=True)}


def run_cleanup(args: argparse.Namespace, store) -> dict:
    dry_run = not args.apply
    job = CorpusCleanup(store, dry_run=dry_run, aggressive=args.aggressive, batch_size=args.batch_size)
    stats = job.run()
    return {
        "dryRun": dry_run,
        "aggressive": args.aggressive,
        "stats": stats.model_dump(by_alias=True),
        **summarize(stats, dry_run=dry_run, aggressive=args.aggressive),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PYQ corpus ingestion and maintenance")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    c = sub.add_parser("crawl", help="Crawl a site for question papers and ingest them")
    c.add_argument("--root", required=True, help="Root URL to start crawling from")
    c.add_argument("--exam", default=config.DEFAULT_EXAM, help="Exam name (UPSC, TNPSC, BPSC, ...)")
    c.add_argument("--level", help="Exam level (Prelims, Mains, ...)")
    c.add_argument("--paper", help="Paper name")
    c.add_argument("--theme", help="Topic/theme tag applied to every question")
    c.add_argument("--year-fallback", type=int, help="Year used when none is found in the document")
    c.add_argument("--max-depth", type=int, default=config.DEFAULT_MAX_DEPTH, help="Maximum crawl depth")
    c.add_argument("--max-pages", type=int, default=config.DEFAULT_MAX_PAGES, help="Maximum pages to fetch")

    d = sub.add_parser("dedup", help="Collapse near-duplicate questions")
    d.add_argument("--apply", action="store_true", help="Delete duplicates (default is a dry run)")

    cl = sub.add_parser("cleanup", help="Normalize fields across the corpus")
    cl.add_argument("--apply", action="store_true", help="Write changes (default is a dry run)")
    cl.add_argument("--aggressive", action="store_true", help="Delete records that remain invalid")
    cl.add_argument("--batch-size", type=int, default=config.DEFAULT_BATCH_SIZE)
    return parser


COMMANDS = {"crawl": run_crawl, "dedup": run_dedup, "cleanup": run_cleanup}


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.cmd == "crawl":
        try:
            args.root = check_root(args.root)
        except ValueError as exc:
            parser.error(str(exc))
    config.load_env_file()

    store = get_question_store()
    try:
        store.ensure_indexes()
        result = COMMANDS[args.cmd](args, store)
    finally:
        close_driver()
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
