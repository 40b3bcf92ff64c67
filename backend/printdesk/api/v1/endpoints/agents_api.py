# printdesk/api/v1/endpoints/agents_api.py
# REST endpoints for delivery agents (onboarding and account standing)

from fastapi import APIRouter, Query, status, Path as FastApiPath
from typing import Annotated, List, Optional

from printdesk.api.deps import AgentServiceDep
from printdesk.db.schemas.agent_schemas import (
    AccountStanding, AgentCreate, AgentDoc, AgentFilters, StandingChangeRequest, WorkCapacity,
)

router = APIRouter()

AgentId = Annotated[str, FastApiPath(description="Agent id (document key)")]


@router.get("", response_model=List[AgentDoc], summary="List Agents")
async def list_agents(
    agent_service: AgentServiceDep,
    approved: Optional[bool] = None,
    standing: Annotated[Optional[AccountStanding], Query(description="Account standing")] = None,
    capacity: Annotated[Optional[WorkCapacity], Query(description="Work capacity")] = None,
    city: Optional[str] = None,
):
    filters = AgentFilters(approved=approved, account_standing=standing, work_capacity=capacity, city=city)
    return await agent_service.list_agents(filters)


@router.post("", response_model=AgentDoc, status_code=status.HTTP_201_CREATED, summary="Register Agent")
async def create_agent(body: AgentCreate, agent_service: AgentServiceDep):
    return await agent_service.create_agent(body)


@router.get("/{agent_id}", response_model=AgentDoc, summary="Get Agent")
async def get_agent(agent_id: AgentId, agent_service: AgentServiceDep):
    return await agent_service.get_agent(agent_id)


@router.post("/{agent_id}/approve", response_model=AgentDoc, summary="Approve Agent")
async def approve_agent(agent_id: AgentId, agent_service: AgentServiceDep, body: Optional[StandingChangeRequest] = None):
    body = body or StandingChangeRequest()
    return await agent_service.approve_agent(agent_id, body.changed_by)


@router.post("/{agent_id}/suspend", response_model=AgentDoc, summary="Suspend Agent")
async def suspend_agent(agent_id: AgentId, agent_service: AgentServiceDep, body: Optional[StandingChangeRequest] = None):
    body = body or StandingChangeRequest()
    return await agent_service.suspend_agent(agent_id, body.reason, body.changed_by)


@router.post("/{agent_id}/reactivate", response_model=AgentDoc, summary="Reactivate Agent")
async def reactivate_agent(agent_id: AgentId, agent_service: AgentServiceDep, body: Optional[StandingChangeRequest] = None):
    body = body or StandingChangeRequest()
    return await agent_service.reactivate_agent(agent_id, body.changed_by)


@router.post("/{agent_id}/deactivate", response_model=AgentDoc, summary="Deactivate Agent")
async def deactivate_agent(agent_id: AgentId, agent_service: AgentServiceDep, body: Optional[StandingChangeRequest] = None):
    body = body or StandingChangeRequest()
    return await agent_service.deactivate_agent(agent_id, body.reason, body.changed_by)
