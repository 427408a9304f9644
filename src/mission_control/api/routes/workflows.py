"""Workflow template endpoints.

Endpoints:
  GET     /api/workflows              List workflows
  POST    /api/workflows              Create a workflow
  GET     /api/workflows/{id}         Get one workflow
  PUT     /api/workflows/{id}         Update name, description or steps
  DELETE  /api/workflows/{id}         Delete a workflow
  POST    /api/workflows/{id}/run     Always 501: execution is not integrated
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from mission_control.adapters.json_store import WorkflowStore
from mission_control.api.dependencies import ClockDep, SettingsDep
from mission_control.api.schemas import (
    CreateWorkflowRequest,
    SuccessResponse,
    UpdateWorkflowRequest,
    WorkflowListResponse,
    WorkflowResponse,
    validate_records,
)
from mission_control.core.services import WorkflowService
from mission_control.errors import NotFoundError

router = APIRouter(prefix="/workflows", tags=["workflows"])


def _get_workflow_service(settings: SettingsDep, clock: ClockDep) -> WorkflowService:
    return WorkflowService(WorkflowStore(settings.workflows_path), clock)


WorkflowServiceDep = Annotated[WorkflowService, Depends(_get_workflow_service)]


def _steps(request: CreateWorkflowRequest) -> list[dict] | None:
    if request.steps is None:
        return None
    return [step.model_dump(exclude_none=True) for step in request.steps]


@router.get("", response_model=WorkflowListResponse, summary="List workflows")
async def list_workflows(service: WorkflowServiceDep) -> WorkflowListResponse:
    return WorkflowListResponse(
        workflows=validate_records(WorkflowResponse, service.list_workflows(), "workflow_record_invalid")
    )


@router.post("", response_model=WorkflowResponse, status_code=201, summary="Create a workflow")
async def create_workflow(request: CreateWorkflowRequest, service: WorkflowServiceDep) -> WorkflowResponse:
    return WorkflowResponse(**service.create_workflow(request.name, request.description, _steps(request)))


@router.get("/{workflow_id}", response_model=WorkflowResponse, summary="Get a workflow")
async def get_workflow(workflow_id: str, service: WorkflowServiceDep) -> WorkflowResponse:
    workflow = service.get_workflow(workflow_id)
    valid = validate_records(WorkflowResponse, [workflow] if workflow else [], "workflow_record_invalid")
    if not valid:
        raise NotFoundError("Workflow not found")
    return valid[0]


@router.put("/{workflow_id}", response_model=WorkflowResponse, summary="Update a workflow")
async def update_workflow(
    workflow_id: str, request: UpdateWorkflowRequest, service: WorkflowServiceDep
) -> WorkflowResponse:
    workflow = service.update_workflow(
        workflow_id,
        {"name": request.name, "description": request.description, "steps": _steps(request)},
    )
    if workflow is None:
        raise NotFoundError("Workflow not found")
    return WorkflowResponse(**workflow)


@router.delete("/{workflow_id}", response_model=SuccessResponse, summary="Delete a workflow")
async def delete_workflow(workflow_id: str, service: WorkflowServiceDep) -> SuccessResponse:
    if not service.delete_workflow(workflow_id):
        raise NotFoundError("Workflow not found")
    return SuccessResponse()


@router.post("/{workflow_id}/run", summary="Run a workflow (not implemented)")
async def run_workflow(workflow_id: str, service: WorkflowServiceDep) -> None:
    service.run_workflow(workflow_id)
