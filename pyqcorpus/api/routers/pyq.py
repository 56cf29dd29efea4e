import hmac
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from pyqcorpus.models.question import JobRequest
from pyqcorpus.services.corpus.cleanup import CorpusCleanup, summarize
from pyqcorpus.services.corpus.dedup import deduplicate
from pyqcorpus.services.corpus.store import get_question_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pyq", tags=["pyq"])


def require_admin(req: Optional[JobRequest] = None, x_admin_key: Optional[str] = Header(None)) -> JobRequest:
    req = req or JobRequest()
    expected = os.getenv("ADMIN_API_KEY")
    supplied = x_admin_key or req.admin_key
    if not expected or not supplied or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(
            status_code=401,
            detail="Unauthorized: provide a valid admin API key in the X-Admin-Key header",
        )
    return req


def _run_cleanup(req: JobRequest, *, aggressive: bool):
    store = get_question_store()
    try:
        stats = CorpusCleanup(store, dry_run=req.dry_run, aggressive=aggressive, batch_size=req.batch_size).run()
        final_count = store.count()
        by_exam = store.counts_by_exam()
    except Exception as exc:
        logger.exception("PYQ cleanup failed")
        raise HTTPException(status_code=500, detail=f"Failed to cleanup PYQ data: {exc}")
    return {
        "success": True,
        "dryRun": req.dry_run,
        "aggressive": aggressive,
        "stats": stats.model_dump(by_alias=True),
        "finalCount": final_count,
        "byExam": by_exam,
        **summarize(stats, dry_run=req.dry_run, aggressive=aggressive),
    }


@router.post("/cleanup")
def api_cleanup(req: JobRequest = Depends(require_admin)):
    """Normalize and flag; never deletes anything but exact duplicates."""
    return _run_cleanup(req, aggressive=False)


@router.post("/comprehensive-cleanup")
def api_comprehensive_cleanup(req: JobRequest = Depends(require_admin)):
    return _run_cleanup(req, aggressive=req.aggressive)


@router.post("/dedup")
def api_dedup(req: JobRequest = Depends(require_admin)):
    store = get_question_store()
    try:
        stats = deduplicate(store, dry_run=req.dry_run)
    except Exception as exc:
        logger.exception("PYQ dedup failed")
        raise HTTPException(status_code=500, detail=f"Failed to deduplicate PYQ data: {exc}")
    verb = "Would remove" if req.dry_run else "Removed"
    return {
        "success": True,
        "dryRun": req.dry_run,
        "stats": stats.model_dump(by_alias=True),
        "message": f"{verb} {stats.deleted} duplicate(s) across {stats.groups} group(s).",
    }


@router.get("/search")
def api_search(exam: Optional[str] = None, year: Optional[int] = None, q: Optional[str] = None, limit: int = 20):
    limit = max(1, min(int(limit or 20), 100))
    try:
        items = get_question_store().search(exam=exam, year=year, text=q, limit=limit)
    except Exception as exc:
        logger.exception("PYQ search failed")
        raise HTTPException(status_code=500, detail=f"Failed to search PYQ data: {exc}")
    return {"count": len(items), "items": items}
