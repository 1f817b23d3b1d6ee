from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from typing import List, Optional
from urllib.parse import quote

from string_manager.core.auth import get_current_user
from string_manager.core.db import get_store
from string_manager.api.http.deps import load_app
from string_manager.db.store import RecordStore
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Role
from string_manager.domains.strings.csv_io import export_csv, import_csv
from string_manager.domains.strings.schemas import (
    ResetPendingResponse, StringCreate, StringPage, StringResponse, StringUpdate
)
from string_manager.domains.strings.services import StringService, matches_search
from string_manager.domains.versions.schemas import PendingChangeResponse

router = APIRouter(prefix="/projects/{project_id}/apps/{app_id}", tags=["strings"])


def content_disposition(filename: str) -> str:
    """Заголовок вложения: ASCII-имя для старых клиентов и UTF-8 имя по RFC 5987"""
    fallback = "".join(ch for ch in filename if ch.isascii() and ch.isprintable() and ch not in '"\\')
    fallback = fallback.strip() or "strings.csv"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/strings", response_model=StringPage)
async def get_strings(
    project_id: int,
    app_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=1000),
    search: Optional[str] = Query(None, max_length=200),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Страница строк приложения с поиском"""
    await load_app(store, project_id, app_id, user)
    items, total = await StringService(store).list_strings(app_id, page, limit, search)

    return StringPage(
        items=[StringResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        limit=limit
    )


@router.post("/strings", response_model=StringResponse, status_code=status.HTTP_201_CREATED)
async def create_string(
    project_id: int,
    app_id: int,
    string_data: StringCreate,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Создание строки"""
    await load_app(store, project_id, app_id, user, Role.MEMBER)
    return await StringService(store).create_string(app_id, string_data, user.id)


@router.put("/strings/{string_id}", response_model=StringResponse)
async def update_string(
    project_id: int,
    app_id: int,
    string_id: int,
    update_data: StringUpdate,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Обновление строки"""
    await load_app(store, project_id, app_id, user, Role.MEMBER)
    item = await StringService(store).update_string(app_id, string_id, update_data, user.id)

    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="String not found"
        )

    return item


@router.delete("/strings/{string_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_string(
    project_id: int,
    app_id: int,
    string_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Удаление строки"""
    await load_app(store, project_id, app_id, user, Role.MEMBER)

    if not await StringService(store).delete_string(app_id, string_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="String not found"
        )


@router.post("/strings/import", response_model=List[StringResponse], status_code=status.HTTP_201_CREATED)
async def import_strings(
    project_id: int,
    app_id: int,
    request: Request,
    key_column: Optional[str] = Query(None),
    value_column: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Импорт строк из CSV в теле запроса"""
    await load_app(store, project_id, app_id, user, Role.MEMBER)

    try:
        text = (await request.body()).decode("utf-8")
        return await import_csv(store, app_id, text, key_column, value_column, user.id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/strings/export")
async def export_strings(
    project_id: int,
    app_id: int,
    search: Optional[str] = Query(None, max_length=200),
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Экспорт строк в CSV; при поиске выгружаются только найденные"""
    app = await load_app(store, project_id, app_id, user)
    strings = await store.list_all_strings(app_id)
    if search and search.strip():
        strings = [item for item in strings if matches_search(item, search.strip())]

    filename = f"{app.name}_strings_{date.today().isoformat()}.csv"
    return Response(
        content=export_csv(app, strings),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": content_disposition(filename)}
    )


@router.get("/pending", response_model=List[PendingChangeResponse])
async def get_pending_changes(
    project_id: int,
    app_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Изменения, ожидающие публикации"""
    await load_app(store, project_id, app_id, user)
    return await StringService(store).pending_changes(app_id)


@router.post("/pending/reset", response_model=ResetPendingResponse)
async def reset_pending_changes(
    project_id: int,
    app_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Сброс статусов без публикации"""
    await load_app(store, project_id, app_id, user, Role.MEMBER)
    cleared = await StringService(store).reset_pending(app_id)
    return ResetPendingResponse(cleared=cleared)
