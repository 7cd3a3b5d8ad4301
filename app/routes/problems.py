"""
Problem endpoints - submission, listing, votes, comments, solutions,
owner edits and the delete paths.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from app.core.errors import ServiceError
from app.core.session import require_user_id
from app.models.problem import (
    BulkDeleteRequest,
    CommentCreate,
    CommentResponse,
    DeleteResponse,
    ProblemCreatedResponse,
    ProblemResponse,
    ProblemUpdate,
    SolutionCreate,
    StatusUpdateRequest,
    VoteRequest,
)
from app.services.ai_enrichment import ImageInput
from app.services.problem_service import get_problem_service, require_title_and_description
from app.services.upload_service import discard_image, save_image
import asyncio
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/problems", tags=["Problems"])


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"❌ {action} failed: {str(e)}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Error {action}"
    )


def _problem_response(problem: dict) -> ProblemResponse:
    return ProblemResponse(**get_problem_service().to_response(problem))


@router.post("", response_model=ProblemCreatedResponse, status_code=status.HTTP_201_CREATED)
async def submit_problem(
    title: str = Form(""),
    description: str = Form(""),
    category: str = Form(""),
    severity: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user_id: str = Depends(require_user_id),
):
    """
    Submit a new problem (multipart form, optional `image` file).

    This endpoint:
    1. Stores the photo, if any (image/*, max 5MB)
    2. Stores the problem with status Pending and no AI suggestions
    3. Schedules AI enrichment and the authority SMS in the background
    4. Returns immediately with the stored problem
    """
    image_path = None
    try:
        logger.info(f"📝 POST /api/problems - title={title!r}, category={category!r}")

        service = get_problem_service()
        require_title_and_description({"title": title, "description": description})
        image_input = None
        if image is not None and image.filename:
            image_path, data, content_type = await save_image(image)
            image_input = ImageInput(data=data, mime_type=content_type)

        problem = service.submit(
            {
                "title": title,
                "description": description,
                "category": category,
                "severity": severity,
                "latitude": latitude,
                "longitude": longitude,
                "address": address,
            },
            owner_id=user_id,
            image_path=image_path,
            image=image_input,
        )
        logger.info(f"✅ Problem created: {problem['id']} ({problem['problem_id']})")
        return ProblemCreatedResponse(**service.to_response(problem))

    except ServiceError as e:
        discard_image(image_path)
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("submitting problem", e)


@router.get("", response_model=List[ProblemResponse])
async def list_problems(
    problem_id: Optional[str] = Query(None, alias="problemId"),
    category: Optional[str] = Query(None),
):
    """All problems newest first, optionally filtered by problemId and category."""
    try:
        service = get_problem_service()
        problems = service.list_problems(problem_id=problem_id, category=category)
        owners = {}
        return [ProblemResponse(**service.to_response(p, owners)) for p in problems]

    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("fetching problems", e)


# Static delete paths are declared before the /{problem_doc_id} routes

@router.delete("/delete/most-recent", response_model=DeleteResponse)
async def delete_most_recent_problem(user_id: str = Depends(require_user_id)):
    try:
        problem = get_problem_service().delete_most_recent()
        logger.info(f"🗑️ Most recent problem deleted by {user_id}: {problem['id']}")
        return DeleteResponse(message="Most recent problem deleted successfully")

    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("deleting problem", e)


@router.delete("/delete/by-id/{problem_id}", response_model=DeleteResponse)
async def delete_problem_by_problem_id(problem_id: str):
    """Delete by human-facing id (PROB-...). Does not require a session."""
    try:
        get_problem_service().delete_by_problem_id(problem_id)
        return DeleteResponse(message=f"Problem {problem_id} deleted successfully")

    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("deleting problem", e)


@router.delete("/delete/multiple", response_model=DeleteResponse)
async def delete_multiple_problems(body: BulkDeleteRequest):
    """Delete every problem whose problemId is in the body. Does not require a session."""
    try:
        deleted = get_problem_service().delete_many(body.problem_ids)
        return DeleteResponse(
            message=f"Successfully deleted {deleted} problems",
            deleted_count=deleted
        )

    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("deleting problems", e)


@router.get("/{problem_doc_id}", response_model=ProblemResponse)
async def get_problem(problem_doc_id: str):
    try:
        return _problem_response(get_problem_service().get_problem(problem_doc_id))
    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("fetching problem", e)


@router.post("/{problem_doc_id}/vote", response_model=ProblemResponse)
async def vote_problem(problem_doc_id: str, body: VoteRequest):
    """Add `vote` to the counter. Open to anonymous callers."""
    try:
        return _problem_response(get_problem_service().vote(problem_doc_id, body.vote))
    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("voting", e)


@router.post(
    "/{problem_doc_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_comment(
    problem_doc_id: str,
    body: CommentCreate,
    user_id: str = Depends(require_user_id),
):
    try:
        comment = get_problem_service().add_comment(problem_doc_id, body.text, user_id)
        return CommentResponse(**comment)
    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("adding comment", e)


@router.get("/{problem_doc_id}/comments", response_model=List[CommentResponse])
async def list_comments(problem_doc_id: str):
    try:
        return [CommentResponse(**c) for c in get_problem_service().list_comments(problem_doc_id)]
    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("fetching comments", e)


@router.post("/{problem_doc_id}/solutions", response_model=ProblemResponse)
async def add_solution(
    problem_doc_id: str,
    body: SolutionCreate,
    user_id: str = Depends(require_user_id),
):
    try:
        problem = get_problem_service().add_solution(problem_doc_id, body.description, user_id)
        return _problem_response(problem)
    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("adding solution", e)


@router.patch("/{problem_doc_id}/status", response_model=ProblemResponse)
async def update_problem_status(
    problem_doc_id: str,
    body: StatusUpdateRequest,
    user_id: str = Depends(require_user_id),
):
    """Owner-only. Status must be Pending, In Progress or Solved."""
    try:
        problem = get_problem_service().update_status(problem_doc_id, body.status, user_id)
        logger.info(f"🔄 Problem {problem_doc_id} status -> {body.status}")
        return _problem_response(problem)
    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("updating status", e)


@router.patch("/{problem_doc_id}", response_model=ProblemResponse)
async def edit_problem(
    problem_doc_id: str,
    body: ProblemUpdate,
    user_id: str = Depends(require_user_id),
):
    """
    Owner-only edit of title, description and category.

    AI suggestions are regenerated before the response is sent, so this call
    can take up to the AI timeout.
    """
    try:
        patch = body.model_dump(exclude_none=True)
        loop = asyncio.get_running_loop()
        problem = await loop.run_in_executor(
            None, get_problem_service().edit_details, problem_doc_id, patch, user_id
        )
        return _problem_response(problem)
    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("updating problem", e)


@router.delete("/{problem_doc_id}", response_model=DeleteResponse)
async def delete_problem(problem_doc_id: str, user_id: str = Depends(require_user_id)):
    """Any logged-in user may delete any problem."""
    try:
        get_problem_service().delete_problem(problem_doc_id)
        logger.info(f"🗑️ Problem {problem_doc_id} deleted by {user_id}")
        return DeleteResponse(message="Problem deleted successfully")
    except ServiceError as e:
        raise e.to_http_exception()
    except Exception as e:
        raise _server_error("deleting problem", e)
