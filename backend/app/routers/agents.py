"""Agent configuration routes."""

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from app.db.dependencies import get_db
from app.schemas.agent import AgentCreate, AgentRead, AgentTestRequest, AgentTestResult, AgentUpdate
from app.schemas.common import ApiResponse
from app.services.agents import AgentConfigError, create_agent, delete_agent, get_agent, list_agents, update_agent
from app.services.llm import LLMError
from app.services.responder import run_agent_test

router = APIRouter(prefix="/users/{user_id}/agents")


@router.get("", response_model=ApiResponse[list[AgentRead]])
def get_agents(
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[list[AgentRead]]:
    return ApiResponse(data=list_agents(db, user_id))


@router.post("", response_model=ApiResponse[AgentRead], status_code=201)
def post_agent(
    payload: AgentCreate,
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[AgentRead]:
    """Create an agent and bind its pages/products."""

    try:
        return ApiResponse(data=create_agent(db, user_id, payload))
    except AgentConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/{agent_id}", response_model=ApiResponse[AgentRead])
def get_single_agent(
    agent_id: int,
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[AgentRead]:
    agent = get_agent(db, user_id, agent_id)
    if agent is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    return ApiResponse(data=agent)


@router.put("/{agent_id}", response_model=ApiResponse[AgentRead])
def put_agent(
    agent_id: int,
    payload: AgentUpdate,
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[AgentRead]:
    try:
        agent = update_agent(db, user_id, agent_id, payload)
    except AgentConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if agent is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    return ApiResponse(data=agent)


@router.delete("/{agent_id}", response_model=ApiResponse[dict[str, bool]])
def remove_agent(
    agent_id: int,
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[dict[str, bool]]:
    if not delete_agent(db, user_id, agent_id):
        raise HTTPException(status_code=404, detail="Agent not found")
    return ApiResponse(data={"success": True})


@router.post("/{agent_id}/test", response_model=ApiResponse[AgentTestResult])
def post_agent_test(
    agent_id: int,
    payload: AgentTestRequest,
    user_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[AgentTestResult]:
    """Send a dry-run message to an agent."""

    try:
        result = run_agent_test(db, user_id, agent_id, message=payload.message, history=payload.history)
    except LLMError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    if result is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    return ApiResponse(data=result)
