import uuid
from concurrent.futures import Executor
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import List, Optional

from fastapi import FastAPI, Depends, Cookie, Query, Response, Path
import uvicorn
from sqlalchemy.orm import Session
from starlette import status

from abbanner.components.hero_banner import HeroBanner
from abbanner.core.auth import require_auth_token
from abbanner.core.db import SessionLocal, get_db, init_db
from abbanner.core.logging_config import configure_logging
from abbanner.core.settings import config_settings
from abbanner.core.storage import SqlKeyValueStore
from abbanner.models.schemas.action_log import (
    ActionLogCreateModel,
    ActionLogResponseModel,
    ActionLogModel,
    AbTestResultsModel,
)
from abbanner.models.schemas.banner import (
    BannerConfigModel,
    BannerRenderResponseModel,
    BannerClickResponseModel,
)
from abbanner.services.action_log_service import ActionLogService
from abbanner.services.action_logger import ActionLogger, build_action_logger
from abbanner.services.metric_service import get_reporter_executor, shutdown_reporter_executor

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    # let in-flight logging calls finish before their logger goes away
    shutdown_reporter_executor(wait=True)
    if get_action_logger.cache_info().currsize:
        get_action_logger().close()
        get_action_logger.cache_clear()


app = FastAPI(
    title="A/B test hero banner",
    description="Variant assignment, rendering and view/click reporting for the hero banner.",
    version="0.1.0",
    lifespan=lifespan,
)


@lru_cache
def get_action_logger() -> ActionLogger:
    return build_action_logger(SessionLocal)


def get_executor() -> Executor:
    return get_reporter_executor()


def _open_banner(
    config: BannerConfigModel,
    response: Response,
    storage_id: Optional[str],
    db: Session,
    action_logger: ActionLogger,
    executor: Executor,
) -> HeroBanner:
    """Connects a banner to the storage namespace named by the visitor's cookie."""
    if not storage_id:
        storage_id = str(uuid.uuid4())
    # Refreshed on every response so the namespace outlives idle visitors
    response.set_cookie(
        config_settings.STORAGE_COOKIE_NAME,
        storage_id,
        max_age=config_settings.STORAGE_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
    )

    banner = HeroBanner(
        config,
        SqlKeyValueStore(db, storage_id),
        action_logger,
        executor=executor,
    )
    banner.connect()
    return banner


@app.post(
    "/banners/render",
    response_model=BannerRenderResponseModel,
    status_code=status.HTTP_200_OK,
    summary="Render the banner for the current visitor",
)
def render_banner(
    config: BannerConfigModel,
    response: Response,
    storage_id: Optional[str] = Cookie(None, alias=config_settings.STORAGE_COOKIE_NAME),
    db: Session = Depends(get_db),
    action_logger: ActionLogger = Depends(get_action_logger),
    executor: Executor = Depends(get_executor),
):
    """
    Resolves (and on first visit persists) the visitor's variant and returns
    the display bundle. A View is reported once per visitor per test.
    """
    banner = _open_banner(config, response, storage_id, db, action_logger, executor)
    display = banner.render()

    return BannerRenderResponseModel(
        variant=banner.assigned_variant,
        visitor_id=banner.visitor_id,
        display=display,
    )


@app.post(
    "/banners/click",
    response_model=BannerClickResponseModel,
    status_code=status.HTTP_200_OK,
    summary="Record a banner button click",
)
def click_banner(
    config: BannerConfigModel,
    response: Response,
    storage_id: Optional[str] = Cookie(None, alias=config_settings.STORAGE_COOKIE_NAME),
    db: Session = Depends(get_db),
    action_logger: ActionLogger = Depends(get_action_logger),
    executor: Executor = Depends(get_executor),
):
    banner = _open_banner(config, response, storage_id, db, action_logger, executor)
    reported = banner.report_click()

    return BannerClickResponseModel(
        variant=banner.assigned_variant,
        button_url=banner.current_data.button_url,
        reported=reported,
    )


@app.post(
    "/ab-test/actions",
    response_model=ActionLogResponseModel,
    status_code=status.HTTP_201_CREATED,
    summary="Record a View/Click action reported by a banner.",
    dependencies=[Depends(require_auth_token)],
)
def post_action(log_data: ActionLogCreateModel, db: Session = Depends(get_db)):
    action_log_service = ActionLogService(db)
    return action_log_service.record_action(log_data)


@app.get(
    "/ab-test/{test_id}/results",
    response_model=AbTestResultsModel,
    status_code=status.HTTP_200_OK,
    summary="Get per-variant view and click statistics for a test",
    dependencies=[Depends(require_auth_token)],
)
def get_test_results(
    test_id: str = Path(..., description="The ID of the A/B test."),
    action_type: str | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    db: Session = Depends(get_db),
):
    filter_params = {
        "action_type": action_type,
        "start_date": start_date,
        "end_date": end_date,
    }
    action_log_service = ActionLogService(db)
    return action_log_service.get_test_results(test_id, filter_params)


@app.get(
    "/ab-test/{test_id}/actions",
    response_model=List[ActionLogModel],
    status_code=status.HTTP_200_OK,
    summary="List the actions recorded for a test",
    dependencies=[Depends(require_auth_token)],
)
def get_test_actions(
    test_id: str = Path(..., description="The ID of the A/B test."),
    action_type: str | None = Query(None),
    db: Session = Depends(get_db),
):
    action_log_service = ActionLogService(db)
    return action_log_service.list_actions(test_id, {"action_type": action_type})


if __name__ == "__main__":
    uvicorn.run("abbanner.main:app", host="0.0.0.0", port=8000, reload=True)
