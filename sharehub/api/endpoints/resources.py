from typing import List, Optional, Tuple
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile
import json

from sharehub.core.database import get_db
from sharehub.api.deps import get_current_user
from sharehub.models.resource import Resource as ResourceModel
from sharehub.models.user import User
from sharehub.schemas.resource import Resource, ResourceCreate, ResourceRead, ResourceStatus, SharedLink
from sharehub.services.resource import ResourceService
from sharehub.utils.exceptions import ValidationError

router = APIRouter()

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def _parse_create_request(request: Request) -> Tuple[ResourceCreate, Optional[UploadFile]]:
    """Read resource fields from either a multipart form or a JSON body"""
    content_type = request.headers.get("content-type", "")
    upload = None

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        data = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key == "file" and value.filename:
                    upload = value
            elif value != "":
                data[key] = value
    else:
        body = await request.body()
        try:
            data = json.loads(body) if body else {}
        except ValueError:
            raise ValidationError("Malformed JSON body")
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")

    try:
        return ResourceCreate.model_validate(data), upload
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


def _with_access_url(request: Request, resource: ResourceModel) -> ResourceRead:
    """Attach the public access URL, built from the current request's host"""
    access_url = request.url_for("access_resource", access_token=resource.access_token)
    return ResourceRead(
        **Resource.model_validate(resource).model_dump(),
        access_url=str(access_url)
    )


@router.post("", response_model=ResourceRead, status_code=status.HTTP_201_CREATED)
async def create_resource(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Share an uploaded file (multipart) or an external URL (JSON or form)"""
    try:
        resource_data, upload = await _parse_create_request(request)
        resource = await ResourceService(db).create_resource(
            owner_id=current_user.id,
            resource_data=resource_data,
            upload=upload
        )
    finally:
        # Closes the parsed form and its spooled upload files
        await request.close()
    return _with_access_url(request, resource)


@router.get("", response_model=List[ResourceRead])
async def list_resources(
    request: Request,
    status: Optional[ResourceStatus] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List current user's resources, oldest first"""
    resources = await ResourceService(db).list_resources(current_user.id, status)
    return [_with_access_url(request, resource) for resource in resources]


@router.get("/access/{access_token}", response_model=SharedLink)
async def access_resource(
    access_token: str,
    db: AsyncSession = Depends(get_db)
):
    """Public access by token: streams files, describes links"""
    resource, file_path = await ResourceService(db).access_resource(access_token)

    if file_path is not None:
        return FileResponse(
            file_path,
            filename=resource.file_name or resource.file_key,
            media_type=resource.mime_type
        )

    return SharedLink.model_validate(resource)


@router.get("/{resource_id}", response_model=ResourceRead)
async def get_resource(
    resource_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get resource metadata"""
    resource = await ResourceService(db).get_resource(resource_id, current_user.id)
    return _with_access_url(request, resource)


@router.delete("/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_resource(
    resource_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete resource"""
    await ResourceService(db).delete_resource(resource_id, current_user.id)
    return None
