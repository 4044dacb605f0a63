from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from teamboard.api.deps import get_auth_context
from teamboard.core.auth import AuthContext
from teamboard.core.errors import ServiceUnavailableError
from teamboard.core.logging import get_logger
from teamboard.core.rate_limit import rate_limited
from teamboard.db.session import get_session
from teamboard.integrations.llm import LLMClient, LLMUnavailableError
from teamboard.integrations.prompts import SYSTEM_TEMPLATE, USER_STORIES_TEMPLATE, render_prompt
from teamboard.models.tasks import Task
from teamboard.schemas.ai import GenerateRequest, GenerateResult, UserStoriesRequest
from teamboard.schemas.common import ApiResponse, ok
from teamboard.services import access

logger = get_logger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"], dependencies=[Depends(rate_limited("ai_limiter"))])

# Keeps the prompt bounded for large projects.
MAX_PROMPT_TASKS = 50


def get_llm(request: Request) -> LLMClient:
    return request.app.state.llm


async def _generate(llm: LLMClient, prompt: str, auth: AuthContext) -> str:
    try:
        return await llm.generate(prompt, system=render_prompt(SYSTEM_TEMPLATE))
    except LLMUnavailableError as exc:
        logger.warning("ai.unavailable user_id=%s reason=%s", auth.user_id, exc)
        raise ServiceUnavailableError(str(exc)) from exc


@router.post("/generate", response_model=ApiResponse[GenerateResult])
async def generate(
    payload: GenerateRequest,
    auth: AuthContext = Depends(get_auth_context),
    llm: LLMClient = Depends(get_llm),
) -> ApiResponse[GenerateResult]:
    text = await _generate(llm, payload.prompt, auth)
    return ok(GenerateResult(text=text))


@router.post("/projects/{project_id}/user-stories", response_model=ApiResponse[GenerateResult])
async def user_stories(
    project_id: int,
    payload: UserStoriesRequest | None = None,
    session: AsyncSession = Depends(get_session),
    auth: AuthContext = Depends(get_auth_context),
    llm: LLMClient = Depends(get_llm),
) -> ApiResponse[GenerateResult]:
    options = payload or UserStoriesRequest()
    project = await access.get_project_or_404(session, project_id)
    await access.ensure_project_visible(session, auth, project)
    statement = (
        select(Task)
        .where(col(Task.project_id) == project.id)
        .order_by(col(Task.created_at).asc())
        .limit(MAX_PROMPT_TASKS)
    )
    tasks = list(await session.exec(statement))
    prompt = render_prompt(
        USER_STORIES_TEMPLATE,
        project=project,
        tasks=tasks,
        count=options.count,
        focus=options.focus,
    )
    text = await _generate(llm, prompt, auth)
    return ok(GenerateResult(text=text))
