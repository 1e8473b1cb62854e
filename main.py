import base64
import hashlib
import hmac
import json
import logging
import os
import re
import secrets
import smtplib
import sys
import time
from datetime import datetime, timezone
from email.message import EmailMessage
from enum import Enum
from pathlib import Path
from typing import List, Dict, Any, Optional
from urllib.parse import quote

import httpx
import psycopg2
from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape
from psycopg2.extras import RealDictCursor
from starlette.concurrency import run_in_threadpool

BASE_DIR = Path(__file__).resolve().parent
load_dotenv(dotenv_path=BASE_DIR / ".env")
TEMPLATES_DIR = BASE_DIR / "templates"

DATABASE_URL = os.getenv("DATABASE_URL")
USER_DATABASE_URL = os.getenv("USER_DATABASE_URL", DATABASE_URL)
FAVORITES_DATABASE_URL = os.getenv("FAVORITES_DATABASE_URL", DATABASE_URL)
NOTIFICATIONS_DATABASE_URL = os.getenv("NOTIFICATIONS_DATABASE_URL", DATABASE_URL)
DATABASE_SSLMODE = os.getenv("DATABASE_SSLMODE", "require")
JWT_SECRET = os.getenv("JWT_SECRET", "")
JWT_TTL_SECONDS = int(os.getenv("JWT_TTL_SECONDS", "86400"))
TMDB_API_KEY = os.getenv("TMDB_API_KEY", "")
TMDB_API_BASE = os.getenv("TMDB_API_BASE", "https://api.themoviedb.org/3").rstrip("/")
TMDB_TIMEOUT_SECONDS = float(os.getenv("TMDB_TIMEOUT_SECONDS", "10"))
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_TIMEOUT_SECONDS = float(os.getenv("SMTP_TIMEOUT_SECONDS", "30"))
EMAIL_FROM = os.getenv("EMAIL_FROM", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")

TOKEN_COOKIE = "token"
PASSWORD_MIN_LENGTH = 8
NO_AIR_DATE = "N/A"
FINISHED_SHOW_STATUSES = {"Canceled", "Ended"}
MEDIA_MOVIE = "movie"
MEDIA_TV = "tv"

_logging_configured = False


def setup_logging() -> logging.Logger:
    """Configure the root logger with a console handler and an optional file handler."""
    global _logging_configured
    root_logger = logging.getLogger()
    if _logging_configured:
        return root_logger
    root_logger.setLevel(LOG_LEVEL.upper())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(console_handler)

    if LOG_FILE:
        file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root_logger.addHandler(file_handler)

    _logging_configured = True
    return root_logger


setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI()
email_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


class ErrorKind(Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    INCOMPLETE_DATA = "incomplete_data"
    SCHEMA_MISMATCH = "schema_mismatch"
    INTERNAL = "internal"


STATUS_BY_KIND = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM_UNAVAILABLE: 503,
    ErrorKind.INCOMPLETE_DATA: 400,
    ErrorKind.SCHEMA_MISMATCH: 400,
    ErrorKind.INTERNAL: 500,
}


class AppError(Exception):
    """A failure tagged with its kind where it happens.

    The message is safe to show to the client.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.warning("%s %s failed (%s): %s", request.method, request.url.path, exc.kind.value, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def _connect(url: Optional[str], label: str):
    if not url:
        raise RuntimeError(f"{label} database is not configured.")
    return psycopg2.connect(url, sslmode=DATABASE_SSLMODE)


def get_user_conn():
    return _connect(USER_DATABASE_URL, "User")


def get_favorites_conn():
    return _connect(FAVORITES_DATABASE_URL, "Favorites")


def get_notifications_conn():
    return _connect(NOTIFICATIONS_DATABASE_URL, "Notifications")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def base64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iterations = 200_000
    derived = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"pbkdf2_sha256${iterations}${base64url_encode(salt)}${base64url_encode(derived)}"


def verify_password(password: str, stored_hash: str) -> bool:
    try:
        alg, iter_str, salt_b64, hash_b64 = stored_hash.split("$", 3)
        if alg != "pbkdf2_sha256":
            return False
        iterations = int(iter_str)
        salt = base64url_decode(salt_b64)
        expected = base64url_decode(hash_b64)
        derived = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
        return hmac.compare_digest(derived, expected)
    except Exception:
        return False


def create_token(user: Dict[str, Any]) -> str:
    header = {"alg": "HS256", "typ": "JWT"}
    now = int(time.time())
    payload = {
        "id": user["id"],
        "username": user.get("username"),
        "email": user.get("email"),
        "iat": now,
        "exp": now + JWT_TTL_SECONDS,
    }
    header_b64 = base64url_encode(json.dumps(header, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    payload_b64 = base64url_encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    signature = hmac.new(JWT_SECRET.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return f"{header_b64}.{payload_b64}.{base64url_encode(signature)}"


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        header_b64, payload_b64, signature_b64 = token.split(".", 2)
        signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
        signature = base64url_decode(signature_b64)
        expected = hmac.new(JWT_SECRET.encode("utf-8"), signing_input, hashlib.sha256).digest()
        if not hmac.compare_digest(signature, expected):
            return None
        payload = json.loads(base64url_decode(payload_b64).decode("utf-8"))
        exp = payload.get("exp")
        if exp and int(exp) < int(time.time()):
            return None
        return payload
    except Exception:
        return None


def get_token_payload(request: Request) -> Dict[str, Any]:
    token = request.cookies.get(TOKEN_COOKIE, "")
    if not token or not JWT_SECRET:
        raise AppError(ErrorKind.UNAUTHORIZED, "Unauthorized: No token provided.")
    payload = decode_token(token)
    if not payload or payload.get("id") is None:
        raise AppError(ErrorKind.UNAUTHORIZED, "Unauthorized: Invalid or expired token.")
    return payload


def get_user_id_from_token(request: Request) -> int:
    return get_token_payload(request)["id"]


def issue_session_cookie(response: Response, user: Dict[str, Any], request: Request) -> None:
    token = create_token(user)
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
        max_age=JWT_TTL_SECONDS,
        path="/",
    )


async def read_json_body(request: Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except Exception:
        raise AppError(ErrorKind.BAD_REQUEST, "Invalid JSON body.")
    if not isinstance(payload, dict):
        raise AppError(ErrorKind.BAD_REQUEST, "Invalid JSON body.")
    return payload


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    with get_user_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            "SELECT id, username, email, password_hash FROM app_users WHERE email = %s;",
            (email,),
        )
        return cur.fetchone()


def find_user_conflict(email: str, username: str) -> Optional[Dict[str, Any]]:
    with get_user_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            "SELECT email, username FROM app_users WHERE email = %s OR username = %s LIMIT 1;",
            (email, username),
        )
        return cur.fetchone()


def create_user(username: str, email: str, password: str) -> bool:
    password_hash = hash_password(password)
    try:
        with get_user_conn() as conn, conn.cursor() as cur:
            cur.execute(
                "INSERT INTO app_users (username, email, password_hash) VALUES (%s, %s, %s);",
                (username, email, password_hash),
            )
        return True
    except psycopg2.IntegrityError:
        return False


def get_user_profile(user_id: int) -> Optional[Dict[str, Any]]:
    with get_user_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute("SELECT id, username, email FROM app_users WHERE id = %s;", (user_id,))
        return cur.fetchone()


def get_favorite_ids(user_id: int, media_type: str) -> List[int]:
    with get_favorites_conn() as conn, conn.cursor() as cur:
        cur.execute(
            """
            SELECT media_id FROM favorites
            WHERE user_id = %s AND media_type = %s
            ORDER BY created_at;
            """,
            (user_id, media_type),
        )
        return [row[0] for row in cur.fetchall()]


def add_favorite(user_id: int, media_type: str, media_id: int) -> None:
    with get_favorites_conn() as conn, conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO favorites (user_id, media_type, media_id)
            VALUES (%s, %s, %s)
            ON CONFLICT (user_id, media_type, media_id) DO NOTHING;
            """,
            (user_id, media_type, media_id),
        )


def remove_favorite(user_id: int, media_type: str, media_id: int) -> None:
    with get_favorites_conn() as conn, conn.cursor() as cur:
        cur.execute(
            "DELETE FROM favorites WHERE user_id = %s AND media_type = %s AND media_id = %s;",
            (user_id, media_type, media_id),
        )


def notification_row_to_record(row: Dict[str, Any]) -> Dict[str, str]:
    return {
        "id": row["show_id"],
        "dateCreated": row["date_created"],
        "notificationDate": row["notification_date"],
    }


def get_notifications(user_id: int) -> List[Dict[str, str]]:
    with get_notifications_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            """
            SELECT show_id, date_created, notification_date
            FROM notifications
            WHERE user_id = %s
            ORDER BY id;
            """,
            (user_id,),
        )
        return [notification_row_to_record(row) for row in cur.fetchall()]


def insert_notification(user_id: int, record: Dict[str, str]) -> bool:
    """Insert a subscription unless the same (user, show, date) already exists.

    Returns False when the record was already there.
    """
    try:
        with get_notifications_conn() as conn, conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO notifications (user_id, show_id, date_created, notification_date)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id, show_id, notification_date) DO NOTHING
                RETURNING id;
                """,
                (user_id, record["id"], record["dateCreated"], record["notificationDate"]),
            )
            return cur.fetchone() is not None
    except (psycopg2.DataError, psycopg2.IntegrityError) as exc:
        logger.error("Notification record rejected by the database schema: %s", exc)
        raise AppError(
            ErrorKind.SCHEMA_MISMATCH,
            "Subscription failed: Internal schema mismatch. Please update the notifications schema.",
        ) from exc


def delete_notifications(user_id: int, show_id: str) -> int:
    with get_notifications_conn() as conn, conn.cursor() as cur:
        cur.execute(
            "DELETE FROM notifications WHERE user_id = %s AND show_id = %s;",
            (user_id, show_id),
        )
        return cur.rowcount


def fetch_tv_details(show_id: str) -> Dict[str, Any]:
    if not TMDB_API_KEY:
        raise AppError(ErrorKind.INTERNAL, "TMDB API key is not configured.")
    url = f"{TMDB_API_BASE}/tv/{quote(show_id, safe='')}"
    try:
        res = httpx.get(
            url,
            params={"language": "en-US", "api_key": TMDB_API_KEY},
            timeout=TMDB_TIMEOUT_SECONDS,
        )
        res.raise_for_status()
        details = res.json()
    except (httpx.HTTPError, ValueError) as exc:
        status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else "Network Error"
        logger.error("TMDB request failed for ID %s (Status: %s). Aborting subscription.", show_id, status)
        raise AppError(
            ErrorKind.UPSTREAM_UNAVAILABLE,
            "Failed to retrieve show details from TMDB. Cannot create subscription.",
        ) from exc
    if not isinstance(details, dict):
        logger.error("TMDB returned a non-object body for ID %s. Aborting subscription.", show_id)
        raise AppError(
            ErrorKind.UPSTREAM_UNAVAILABLE,
            "Failed to retrieve show details from TMDB. Cannot create subscription.",
        )
    return details


def format_air_date(air_date: str) -> str:
    try:
        day = datetime.strptime(air_date, "%Y-%m-%d")
    except ValueError:
        return air_date
    return f"{day:%B} {day.day}, {day.year}"


def html_to_text(html: str) -> str:
    return re.sub(r"<[^>]*>?", "", html)


def render_confirmation_email(username: str, show_name: str, air_date_text: str) -> str:
    template = email_templates.get_template("notification_confirmed.html")
    return template.render(username=username, show_name=show_name, air_date=air_date_text)


def send_email(to: str, subject: str, html_body: str) -> None:
    if not SMTP_HOST or not SMTP_USER or not SMTP_PASSWORD or not EMAIL_FROM:
        logger.error("Missing SMTP environment variables. Cannot send email.")
        return

    message = EmailMessage()
    message["From"] = EMAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(html_to_text(html_body))
    message.add_alternative(html_body, subtype="html")

    try:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
            smtp.starttls()
            smtp.login(SMTP_USER, SMTP_PASSWORD)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Error sending notification email to %s: %s", to, exc)
        raise AppError(ErrorKind.INTERNAL, "Failed to dispatch notification email.") from exc
    logger.info("Email successfully sent to %s.", to)


def subscription_response(message: str, email_sent: bool, success: Optional[bool] = None, status_code: int = 200) -> JSONResponse:
    content: Dict[str, Any] = {"message": message, "emailSent": email_sent}
    if success is not None:
        content["success"] = success
    return JSONResponse(content, status_code=status_code)


def subscribe_to_next_episode(user_id: int, tv_show_id: Any) -> JSONResponse:
    user = get_user_profile(user_id)
    if not user:
        return subscription_response("User not found or unauthorized", email_sent=False, status_code=401)
    existing = get_notifications(user_id)

    show_id = str(tv_show_id)
    details = fetch_tv_details(show_id)

    show_name = details.get("name")
    if not isinstance(show_name, str) or not show_name.strip():
        logger.error("TMDB returned data for ID %s but missing or empty 'name' field.", show_id)
        raise AppError(ErrorKind.INCOMPLETE_DATA, "Show details were incomplete. Cannot create subscription.")

    status = details.get("status")
    if status in FINISHED_SHOW_STATUSES:
        return subscription_response(
            f"{show_name} is no longer airing new episodes (Status: {status}).",
            email_sent=False,
            success=False,
        )

    next_episode = details.get("next_episode_to_air") or {}
    air_date = next_episode.get("air_date") if isinstance(next_episode, dict) else None
    if not isinstance(air_date, str) or not air_date.strip():
        air_date = None
    notification_date = air_date or NO_AIR_DATE

    already_subscribed_message = (
        f"You are already subscribed to a notification for the next available episode of {show_name}."
    )
    if any(n["id"] == show_id and n["notificationDate"] == notification_date for n in existing):
        return subscription_response(already_subscribed_message, email_sent=False, success=True)

    record = {
        "id": show_id,
        "dateCreated": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "notificationDate": notification_date,
    }
    if not insert_notification(user_id, record):
        return subscription_response(already_subscribed_message, email_sent=False, success=True)
    logger.info("Saved subscription for user %s: %s", user_id, record)

    if not air_date:
        return subscription_response(
            f"Subscription confirmed! We'll notify you when {show_name} announces its next episode date.",
            email_sent=False,
            success=True,
        )

    air_date_text = format_air_date(air_date)
    send_email(
        to=user["email"],
        subject=f"Notification Confirmed: {show_name} is airing soon!",
        html_body=render_confirmation_email(user["username"], show_name, air_date_text),
    )
    return subscription_response(
        f"Success! Reminder set for {show_name} on {air_date_text}. An email confirmation has been sent.",
        email_sent=True,
        success=True,
    )


@app.post("/api/users/signup")
async def signup(request: Request):
    payload = await read_json_body(request)
    username = str(payload.get("username") or "").strip()
    email = normalize_email(str(payload.get("email") or ""))
    password = str(payload.get("password") or "")

    if not username:
        raise AppError(ErrorKind.BAD_REQUEST, "Please enter a username.")
    if not email:
        raise AppError(ErrorKind.BAD_REQUEST, "Please enter an email.")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise AppError(ErrorKind.BAD_REQUEST, "Password must be at least 8 characters long.")

    try:
        existing = find_user_conflict(email, username)
        if existing:
            error = "User already exists"
            if existing.get("email") == email:
                error = "A user with this email already exists"
            elif existing.get("username") == username:
                error = "This username is already taken"
            return JSONResponse({"error": error}, status_code=400)
        created = create_user(username, email, password)
    except Exception:
        logger.exception("Signup failed for %s", email)
        return JSONResponse({"error": "Registration is unavailable. Please try again shortly."}, status_code=500)
    if not created:
        return JSONResponse({"error": "User already exists"}, status_code=400)
    logger.info("Created user %s", username)
    return JSONResponse({"message": "User has been created", "success": True})


@app.post("/api/users/login")
async def login(request: Request):
    payload = await read_json_body(request)
    email = normalize_email(str(payload.get("email") or ""))
    password = str(payload.get("password") or "")
    if not JWT_SECRET:
        return JSONResponse({"error": "Login is unavailable right now."}, status_code=500)

    try:
        user = get_user_by_email(email) if email else None
    except Exception:
        logger.exception("Login lookup failed for %s", email)
        return JSONResponse({"error": "Login is unavailable. Please try again shortly."}, status_code=500)
    if not user:
        return JSONResponse({"error": "User does not exist"}, status_code=400)
    if not verify_password(password, user.get("password_hash", "")):
        return JSONResponse({"error": "Wrong password try again"}, status_code=400)

    response = JSONResponse({"message": "Login Successful", "success": True})
    issue_session_cookie(response, user, request)
    return response


@app.get("/api/users/logout")
def logout() -> JSONResponse:
    response = JSONResponse({"message": "logout successful", "success": True})
    response.delete_cookie(TOKEN_COOKIE, path="/")
    return response


@app.get("/api/users/checktoken")
def check_token(request: Request):
    try:
        payload = get_token_payload(request)
    except AppError as exc:
        return JSONResponse({"success": False, "message": exc.message}, status_code=401)
    user = {key: payload.get(key) for key in ("id", "username", "email")}
    return JSONResponse({"success": True, "message": "Authenticated", "user": user})


@app.get("/api/users/usersinfo")
def users_info(request: Request):
    payload = get_token_payload(request)
    return JSONResponse(
        {
            "message": "User data fetched successfully",
            "success": True,
            "data": {key: payload.get(key) for key in ("id", "username", "email")},
        }
    )


def parse_media_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def add_to_favorites(user_id: int, media_type: str, media_id: int) -> Optional[List[int]]:
    if not get_user_profile(user_id):
        return None
    add_favorite(user_id, media_type, media_id)
    return get_favorite_ids(user_id, media_type)


@app.post("/api/users/addtoFavoritemovie")
async def add_favorite_movie(request: Request):
    user_id = get_user_id_from_token(request)
    payload = await read_json_body(request)
    movie_id = parse_media_id(payload.get("movieId"))
    if not movie_id or payload.get("type") != "movie":
        return JSONResponse({"error": "Invalid request payload"}, status_code=400)
    try:
        favorites = add_to_favorites(user_id, MEDIA_MOVIE, movie_id)
    except Exception:
        logger.exception("Adding movie %s to favorites failed", movie_id)
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)
    if favorites is None:
        return JSONResponse({"error": "User not found"}, status_code=404)
    return JSONResponse({"message": "Movie added to favorites", "favorites": favorites})


@app.post("/api/users/addtoFavoritestv")
async def add_favorite_tv(request: Request):
    user_id = get_user_id_from_token(request)
    payload = await read_json_body(request)
    show_id = parse_media_id(payload.get("showId"))
    if not show_id or payload.get("type") != "tvshow":
        return JSONResponse({"error": "Invalid request payload"}, status_code=400)
    try:
        favorites = add_to_favorites(user_id, MEDIA_TV, show_id)
    except Exception:
        logger.exception("Adding TV show %s to favorites failed", show_id)
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)
    if favorites is None:
        return JSONResponse({"error": "User not found"}, status_code=404)
    return JSONResponse({"message": "TV Show added to favorites", "favorites": favorites})


@app.post("/api/users/RemovefromFavorite")
async def remove_from_favorites(request: Request):
    user_id = get_user_id_from_token(request)
    payload = await read_json_body(request)
    media_type_label = payload.get("mediaType")
    media_type = MEDIA_MOVIE if media_type_label == "movie" else MEDIA_TV
    media_id = parse_media_id(payload.get("mediaId"))
    if media_id is None:
        return JSONResponse({"error": "Invalid request payload"}, status_code=400)
    try:
        if not get_user_profile(user_id):
            return JSONResponse({"error": "User not found"}, status_code=404)
        remove_favorite(user_id, media_type, media_id)
        data = {
            "favoriteMovies": get_favorite_ids(user_id, MEDIA_MOVIE),
            "favoriteTvShows": get_favorite_ids(user_id, MEDIA_TV),
        }
    except Exception:
        logger.exception("Removing %s %s from favorites failed", media_type, media_id)
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)
    return JSONResponse(
        {"message": f"{media_type_label} removed successfully", "success": True, "data": data}
    )


@app.get("/api/users/showFavorites")
def show_favorites(request: Request):
    user_id = get_user_id_from_token(request)
    try:
        if not get_user_profile(user_id):
            return JSONResponse({"error": "User not found"}, status_code=404)
        data = {
            "favoriteMovies": get_favorite_ids(user_id, MEDIA_MOVIE),
            "favoriteTvShows": get_favorite_ids(user_id, MEDIA_TV),
        }
    except Exception:
        logger.exception("Fetching favorites failed for user %s", user_id)
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)
    return JSONResponse({"message": "User favorites fetched successfully", "success": True, "data": data})


def parse_show_id(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value) if value else None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@app.post("/api/users/notifyusers")
async def notify_users(request: Request):
    try:
        payload = await read_json_body(request)
    except AppError:
        payload = {}
    tv_show_id = parse_show_id(payload.get("tvShowId"))
    if tv_show_id is None:
        return subscription_response("Missing TV Show ID in request body.", email_sent=False, status_code=400)

    try:
        user_id = get_user_id_from_token(request)
        return await run_in_threadpool(subscribe_to_next_episode, user_id, tv_show_id)
    except AppError as exc:
        if exc.kind == ErrorKind.UNAUTHORIZED:
            logger.warning("Notification subscription rejected: %s", exc.message)
            return subscription_response(
                "Authentication failed. Please log in again.", email_sent=False, status_code=401
            )
        if exc.kind in (ErrorKind.UPSTREAM_UNAVAILABLE, ErrorKind.INCOMPLETE_DATA, ErrorKind.SCHEMA_MISMATCH):
            return subscription_response(exc.message, email_sent=False, status_code=exc.status_code)
        logger.error("Notification subscription error: %s", exc.message)
    except Exception:
        logger.exception("Notification subscription error")
    return subscription_response(
        "Internal server error during subscription setup. Please check logs.",
        email_sent=False,
        status_code=500,
    )


@app.get("/api/users/shownotifications")
def show_notifications(request: Request):
    try:
        user_id = get_user_id_from_token(request)
    except AppError:
        return JSONResponse({"error": "Authentication failed. Please log in."}, status_code=401)
    try:
        if not get_user_profile(user_id):
            return JSONResponse({"message": "User not found or not logged in."}, status_code=404)
        notifications = get_notifications(user_id)
    except Exception:
        logger.exception("Error fetching notifications for user %s", user_id)
        return JSONResponse({"error": "Failed to fetch notifications list."}, status_code=500)
    return JSONResponse({"data": notifications, "success": True})


@app.delete("/api/users/deletenotification")
async def delete_notification(request: Request):
    try:
        user_id = get_user_id_from_token(request)
    except AppError as exc:
        return JSONResponse({"error": exc.message}, status_code=401)

    payload = await read_json_body(request)
    show_id = payload.get("showId")
    if not show_id:
        return JSONResponse({"error": "Missing showId in request body."}, status_code=400)

    try:
        if not get_user_profile(user_id):
            return JSONResponse({"error": "User not found."}, status_code=404)
        removed = delete_notifications(user_id, str(show_id))
    except Exception:
        logger.exception("Database deletion error for user %s", user_id)
        return JSONResponse(
            {"error": "Failed to delete notification due to a server error."},
            status_code=500,
        )
    logger.info("Removed %s notification(s) for show %s, user %s", removed, show_id, user_id)
    return JSONResponse(
        {"message": f"Notification for show ID {show_id} successfully removed or already nonexistent."}
    )
