import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from src.adapters.uri_templates import UriTemplateError
from src.api.deps import get_entry_reader, get_entry_service
from src.api.schemas import (
    EntryMoveRequest,
    EntryResponse,
    EntrySaveRequest,
    EntrySaveResponse,
    ValidationErrorModel,
)
from src.components.entries import (
    EntryError,
    EntryReader,
    EntryService,
    GetEntryInput,
    InvalidConfigurationError,
    InvalidMoveError,
    LocaleNotEnabledError,
    MoveAfterInput,
    MoveUnderInput,
    NotFoundError,
    SaveEntryInput,
    SlugConflictError,
    TreeQueryInput,
    run_ancestors,
    run_descendants,
    run_get,
    run_move_after,
    run_move_under,
    run_save,
)
from src.core.entities import EntryValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(
        e, (LocaleNotEnabledError, InvalidConfigurationError, InvalidMoveError, UriTemplateError)
    ):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, SlugConflictError):
        return HTTPException(status_code=409, detail=str(e))
    logger.error("entry operation failed: %s", e)
    return HTTPException(status_code=500, detail=str(e))


def _errors(errors: list[EntryValidationError]) -> list[dict[str, str | None]]:
    return [
        ValidationErrorModel(code=e.code, message=e.message, field=e.field).model_dump()
        for e in errors
    ]


@router.post("", response_model=EntrySaveResponse)
def save_entry(
    req: EntrySaveRequest,
    service: EntryService = Depends(get_entry_service),
) -> EntrySaveResponse:
    """Create (no id) or update an entry."""
    try:
        result = run_save(
            SaveEntryInput(entry=req.to_entry(), preserve_existing_slug=req.preserve_existing_slug),
            service=service,
        )
    except (EntryError, UriTemplateError) as e:
        raise _http_error(e) from e

    if not result.success:
        raise HTTPException(status_code=422, detail={"errors": _errors(result.errors)})

    return EntrySaveResponse(
        entry=EntryResponse.from_entry(result.entry), is_new_entry=result.is_new_entry
    )


@router.get("/{entry_id}", response_model=EntryResponse)
def get_entry(
    entry_id: int,
    locale: str | None = None,
    reader: EntryReader = Depends(get_entry_reader),
) -> EntryResponse:
    result = run_get(GetEntryInput(entry_id=entry_id, locale=locale), reader=reader)
    if not result.success or result.entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return EntryResponse.from_entry(result.entry)


@router.get("/{entry_id}/ancestors", response_model=list[EntryResponse])
def get_ancestors(
    entry_id: int,
    locale: str | None = None,
    max_delta: int | None = Query(default=None, ge=1),
    reader: EntryReader = Depends(get_entry_reader),
) -> list[EntryResponse]:
    inp = TreeQueryInput(entry_id=entry_id, locale=locale, max_delta=max_delta)
    result = run_ancestors(inp, reader=reader)
    if not result.success:
        raise HTTPException(status_code=404, detail="Entry not found")
    return [EntryResponse.from_entry(e) for e in result.entries]


@router.get("/{entry_id}/descendants", response_model=list[EntryResponse])
def get_descendants(
    entry_id: int,
    locale: str | None = None,
    max_delta: int | None = Query(default=None, ge=1),
    reader: EntryReader = Depends(get_entry_reader),
) -> list[EntryResponse]:
    inp = TreeQueryInput(entry_id=entry_id, locale=locale, max_delta=max_delta)
    result = run_descendants(inp, reader=reader)
    if not result.success:
        raise HTTPException(status_code=404, detail="Entry not found")
    return [EntryResponse.from_entry(e) for e in result.entries]


@router.post("/{entry_id}/move", response_model=EntryResponse)
def move_entry(
    entry_id: int,
    req: EntryMoveRequest,
    service: EntryService = Depends(get_entry_service),
    reader: EntryReader = Depends(get_entry_reader),
) -> EntryResponse:
    """Move under parent_id (omitted = top level) or directly after after_id."""
    if req.parent_id is not None and req.after_id is not None:
        raise HTTPException(status_code=400, detail="Give either parent_id or after_id, not both")

    try:
        if req.after_id is not None:
            result = run_move_after(
                MoveAfterInput(entry_id=entry_id, prev_entry_id=req.after_id),
                service=service,
                reader=reader,
            )
        else:
            result = run_move_under(
                MoveUnderInput(entry_id=entry_id, parent_id=req.parent_id, prepend=req.prepend),
                service=service,
                reader=reader,
            )
    except EntryError as e:
        raise _http_error(e) from e

    if not result.success or result.entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return EntryResponse.from_entry(result.entry)
