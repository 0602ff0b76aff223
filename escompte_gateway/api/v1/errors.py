"""Mapping of domain exceptions to HTTP responses"""

import logging
from contextlib import contextmanager

from fastapi import HTTPException
from sqlalchemy.orm import Session

from escompte_gateway.domain.exceptions import (
    RecordNotFoundError,
    UnsupportedExportFormatError,
    ValidationFailedError,
)


@contextmanager
def domain_errors(db: Session, request_id: str):
    """
    Translate domain exceptions raised inside the block.

    404 for unknown records, 422 with per-field errors and warnings for
    rejected writes, 400 for an unknown export format, 500 (after a
    rollback) for anything unexpected.
    """
    try:
        yield
    except RecordNotFoundError as e:
        logging.warning(f"Not found: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except ValidationFailedError as e:
        logging.warning(f"Validation failed: {e}", extra={"request_id": request_id, "errors": e.result.errors})
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "errors": e.result.errors, "warnings": e.result.warnings},
        )

    except UnsupportedExportFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    except HTTPException:
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
