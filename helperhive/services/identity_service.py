"""
Firebase identity adapter.

Account creation and sign-out go through the Admin SDK; password sign-in and
reset emails go through the Identity Toolkit REST API, which the Admin SDK
does not cover.
"""

import logging
from typing import Callable, Optional

import firebase_admin
import httpx
from fastapi import HTTPException
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin import exceptions as firebase_exceptions

from ..config import FIREBASE_PROJECT_ID, FIREBASE_WEB_API_KEY
from ..errors import Conflict, InvalidInput, Unavailable

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts"

AuthStateCallback = Callable[[Optional[str]], None]


def init_firebase() -> None:
    """Initialize Firebase Admin SDK (only once)"""
    try:
        firebase_admin.get_app()
    except ValueError:
        try:
            cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with default credentials")
        except Exception:
            # Initialize without credentials (limited functionality)
            firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with project ID only")


class IdentityProvider:
    def __init__(self, api_key: Optional[str] = FIREBASE_WEB_API_KEY):
        self.api_key = api_key
        self._listeners: list[AuthStateCallback] = []

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Callable[[], None]:
        """Register a listener called with the uid on sign-in and None on sign-out"""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, uid: Optional[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(uid)
            except Exception as e:
                logger.error(f"❌ Auth state listener failed: {e}")

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> str:
        init_firebase()
        try:
            record = firebase_auth.create_user(email=email, password=password, display_name=display_name)
        except firebase_auth.EmailAlreadyExistsError as e:
            raise Conflict("This email is already registered") from e
        except ValueError as e:
            raise InvalidInput(str(e)) from e
        except firebase_exceptions.FirebaseError as e:
            logger.error(f"❌ Firebase sign-up failed for {email}: {e}")
            raise Unavailable("Identity provider unavailable") from e
        logger.info(f"✅ Firebase account created: {record.uid}")
        return record.uid

    async def sign_in(self, email: str, password: str) -> dict:
        data = await self._toolkit_call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        uid = data["localId"]
        self._emit(uid)
        return {
            "user_id": uid,
            "id_token": data["idToken"],
            "refresh_token": data["refreshToken"],
            "expires_in": int(data.get("expiresIn", 3600)),
            "email_verified": bool(data.get("emailVerified", False)),
        }

    def current_user(self, decoded_token: dict) -> dict:
        return {
            "id": decoded_token.get("sub") or decoded_token.get("user_id"),
            "email_verified": bool(decoded_token.get("email_verified", False)),
        }

    def sign_out(self, uid: str) -> None:
        """Revoke refresh tokens so every session of the user ends"""
        init_firebase()
        try:
            firebase_auth.revoke_refresh_tokens(uid)
        except firebase_exceptions.FirebaseError as e:
            logger.error(f"❌ Failed to revoke tokens for {uid}: {e}")
            raise Unavailable("Identity provider unavailable") from e
        self._emit(None)
        logger.info(f"👋 Signed out {uid}")

    async def send_password_reset(self, email: str) -> None:
        await self._toolkit_call("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})
        logger.info(f"📧 Password reset email requested for {email}")

    async def _toolkit_call(self, method: str, body: dict) -> dict:
        if not self.api_key:
            logger.error("❌ FIREBASE_WEB_API_KEY not configured")
            raise HTTPException(status_code=500, detail="Firebase not configured")

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(f"{IDENTITY_TOOLKIT_URL}:{method}?key={self.api_key}", json=body)
        except httpx.HTTPError as e:
            logger.error(f"❌ Identity Toolkit {method} failed: {e}")
            raise Unavailable("Identity provider unavailable") from e

        if response.status_code == 200:
            return response.json()

        message = response.json().get("error", {}).get("message", "") if response.content else ""
        logger.warning(f"⚠️ Identity Toolkit {method} rejected: {message}")
        if method == "signInWithPassword":
            raise HTTPException(status_code=401, detail="Invalid email or password")
        if message == "EMAIL_NOT_FOUND":
            # Do not reveal which emails have accounts
            return {}
        raise InvalidInput("Request rejected by identity provider")


identity_provider = IdentityProvider()
