# api_routes.py - HTTP API: accounts, posts, usernames, image upload
from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from PIL import Image
from pydantic import BaseModel
from typing import Optional
from pathlib import Path
import logging

from utils.config import AppConfig
from utils.database_manager import DatabaseManager
from utils.error_handler import (
    async_error_handler_decorator,
    ValidationError, StoreError, UploadError
)
from utils.helpers import build_upload_filename, create_directory, is_valid_image

logger = logging.getLogger(__name__)

api_router = APIRouter()

ALLOWED_EMAIL_DOMAINS = ('tezu.ac.in', 'tezu.ernet.in')


# Request schemas. Fields are optional so that a missing field gets the
# endpoint's own 400 message instead of a schema error.
class SignupRequest(BaseModel):
    fname: Optional[str] = None
    lname: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class SigninRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class PostCreateRequest(BaseModel):
    imageUrl: Optional[str] = None
    caption: Optional[str] = None


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_email_domain(email: str) -> str:
    """Part after the '@', or '' unless there is exactly one '@'"""
    parts = email.split('@')
    if len(parts) != 2:
        return ''
    return parts[1]


def is_valid_email_domain(email: str) -> bool:
    return get_email_domain(email) in ALLOWED_EMAIL_DOMAINS


@api_router.post("/signup", status_code=status.HTTP_201_CREATED)
@async_error_handler_decorator
async def signup(
    payload: Optional[SignupRequest] = None,
    db_manager: DatabaseManager = Depends(get_db_manager)
):
    """Register a user with an institutional email"""
    payload = payload or SignupRequest()
    logger.info(f"Signup request: email={payload.email!r}")

    if not (payload.fname and payload.lname and payload.email and payload.password):
        raise ValidationError("All fields are required")

    if not is_valid_email_domain(payload.email):
        raise ValidationError(
            "Email must be from tezu.ac.in or tezu.ernet.in",
            field="email",
            details={'domain': get_email_domain(payload.email)}
        )

    if db_manager.find_user_by_email(payload.email):
        raise ValidationError("User already exists", field="email")

    db_manager.create_user(payload.fname, payload.lname, payload.email, payload.password)

    return {"message": "User registered successfully!"}


@api_router.post("/signin")
@async_error_handler_decorator
async def signin(
    payload: Optional[SigninRequest] = None,
    db_manager: DatabaseManager = Depends(get_db_manager)
):
    """Check an email/password pair"""
    payload = payload or SigninRequest()

    if not (payload.email and payload.password):
        raise ValidationError("All fields are required")

    user = db_manager.find_user_by_email(payload.email)
    # plaintext comparison, passwords are stored as submitted
    if not user or user.password != payload.password:
        raise ValidationError("Invalid email or password", details={'email': payload.email})

    logger.info(f"Signin succeeded: user_id={user.id}")
    return {"message": "Login successful"}


@api_router.post("/post", status_code=status.HTTP_201_CREATED)
@async_error_handler_decorator
async def create_post(
    payload: Optional[PostCreateRequest] = None,
    db_manager: DatabaseManager = Depends(get_db_manager)
):
    """Create an image post"""
    payload = payload or PostCreateRequest()

    if not (payload.imageUrl and payload.caption):
        raise ValidationError("Image URL and caption are required")

    try:
        db_manager.create_post(payload.imageUrl, payload.caption)
    except StoreError as e:
        raise StoreError(
            "Error creating post",
            user_message="Failed to create post",
            details=e.details
        ) from e

    return {"message": "Post created successfully!"}


@api_router.get("/posts")
@async_error_handler_decorator
async def list_posts(db_manager: DatabaseManager = Depends(get_db_manager)):
    """All posts, newest first"""
    try:
        posts = db_manager.list_posts()
    except StoreError as e:
        raise StoreError(
            "Error fetching posts",
            user_message="Failed to fetch posts",
            details=e.details
        ) from e

    return [post.to_dict() for post in posts]


@api_router.get("/usernames")
@async_error_handler_decorator
async def list_usernames(db_manager: DatabaseManager = Depends(get_db_manager)):
    """Every user's display name"""
    try:
        return db_manager.list_user_display_names()
    except StoreError as e:
        raise StoreError(
            "Error fetching usernames",
            user_message="Failed to fetch usernames",
            details=e.details
        ) from e


@api_router.post("/upload", status_code=status.HTTP_201_CREATED)
@async_error_handler_decorator
async def upload_image(
    image: Optional[UploadFile] = File(None),
    config: AppConfig = Depends(get_app_config)
):
    """
    🖼️ Store an uploaded image

    The returned imageUrl is served from /uploads and can be used to create
    a post.
    """
    if image is None or not image.filename:
        raise UploadError("Image file is required")

    max_bytes = int(config.get_max_upload_mb() * 1024 * 1024)
    if image.size is not None and image.size > max_bytes:
        raise UploadError(
            "Image exceeds the upload size limit",
            status_code=413,
            details={'size': image.size, 'max_bytes': max_bytes}
        )

    # one byte past the limit is enough to tell it was exceeded
    data = await image.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise UploadError(
            "Image exceeds the upload size limit",
            status_code=413,
            details={'max_bytes': max_bytes}
        )

    try:
        valid = is_valid_image(data)
    except Image.DecompressionBombError as e:
        raise UploadError(
            "Image dimensions exceed the allowed size",
            status_code=413,
            details={'filename': image.filename, 'reason': str(e)}
        ) from e

    if not valid:
        raise UploadError("Uploaded file is not a valid image", details={'filename': image.filename})

    upload_dir = Path(config.get_upload_dir())
    create_directory(upload_dir)

    filename = build_upload_filename(image.filename)
    (upload_dir / filename).write_bytes(data)
    logger.info(f"📁 Image stored: {filename} ({len(data)} bytes)")

    return {
        "message": "Image uploaded successfully!",
        "filename": filename,
        "imageUrl": f"/uploads/{filename}"
    }
