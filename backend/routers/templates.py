"""
Template Router

Endpoints:
- GET /templates - List templates, newest first
- GET /templates/{id} - Get one template
- POST /templates - Create a template
- PUT /templates/{id} - Replace name, subject and body
- DELETE /templates/{id} - Delete a template and everything sent from it
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Path
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.schemas import TemplateCreate, TemplateUpdate, TemplateResponse, TemplateDeleteResponse
from services.templates import TemplateService
from utils.errors import CampaignMailError, NotFoundError, error_body

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/templates", tags=["Templates"])

NOT_FOUND_BODY = {"error": "Template not found"}


@router.get("", response_model=List[TemplateResponse])
async def list_templates(db: AsyncSession = Depends(get_db)):
    """List all templates ordered by creation time, newest first."""
    try:
        return await TemplateService(db).list_templates()
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: int = Path(..., description="Template ID"),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await TemplateService(db).get_template(template_id)
    except NotFoundError:
        return JSONResponse(status_code=404, content=NOT_FOUND_BODY)
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.post("", response_model=TemplateResponse)
async def create_template(request: TemplateCreate, db: AsyncSession = Depends(get_db)):
    """Create a template. Content is stored as given."""
    logger.info(f"Creating template: {request.name!r}")
    try:
        return await TemplateService(db).create_template(
            name=request.name,
            subject=request.subject,
            html_content=request.html_content,
        )
    except CampaignMailError as e:
        logger.error(f"Database error: {e.details}")
        return JSONResponse(status_code=500, content={"error": e.details})


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    request: TemplateUpdate,
    template_id: int = Path(..., description="Template ID"),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await TemplateService(db).update_template(
            template_id,
            name=request.name,
            subject=request.subject,
            html_content=request.html_content,
        )
    except NotFoundError:
        return JSONResponse(status_code=404, content=NOT_FOUND_BODY)
    except CampaignMailError as e:
        logger.error(f"Error updating template: {e.details}")
        return JSONResponse(status_code=500, content=error_body("Failed to update template", e))


@router.delete("/{template_id}", response_model=TemplateDeleteResponse)
async def delete_template(
    template_id: int = Path(..., description="Template ID"),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a template.

    Sent emails of the template and their open/click events are deleted
    in the same transaction.
    """
    try:
        deleted = await TemplateService(db).delete_template(template_id)
    except NotFoundError:
        return JSONResponse(status_code=404, content=NOT_FOUND_BODY)
    except CampaignMailError as e:
        logger.error(f"Error in delete template: {e.details}")
        return JSONResponse(status_code=500, content=error_body("Failed to delete template", e))

    return TemplateDeleteResponse(
        message="Template deleted successfully",
        deletedTemplate=TemplateResponse.model_validate(deleted),
    )
