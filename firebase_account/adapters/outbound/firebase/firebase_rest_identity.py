"""Firebase Authentication adapter.

Client-side sign in against the Identity Toolkit and Secure Token REST APIs
(or the Auth emulator). Keeps the signed in session, notifies state change
listeners and optionally persists the session through local storage.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any, Optional
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from firebase_account.core.entities.identity import AuthResult, Identity
from firebase_account.core.exceptions import AuthErrorCode, IdentityProviderError
from firebase_account.core.value_objects.credentials import (
    AuthCredential,
    EmailPasswordCredential,
    OAuthCredential,
)
from firebase_account.ports.outbound.identity_provider_port import StateChangeListener
from firebase_account.ports.outbound.local_storage_port import LocalStorageError

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/"
SESSION_KEY = "session.firebase"

# Identity Toolkit error messages look like "WEAK_PASSWORD : Password should be ..."
_REST_ERRORS: dict[str, AuthErrorCode] = {
    "EMAIL_EXISTS": AuthErrorCode.EMAIL_ALREADY_IN_USE,
    "INVALID_EMAIL": AuthErrorCode.INVALID_EMAIL,
    "MISSING_EMAIL": AuthErrorCode.MISSING_EMAIL,
    "WEAK_PASSWORD": AuthErrorCode.WEAK_PASSWORD,
    "EMAIL_NOT_FOUND": AuthErrorCode.USER_NOT_FOUND,
    "USER_NOT_FOUND": AuthErrorCode.USER_NOT_FOUND,
    "INVALID_PASSWORD": AuthErrorCode.WRONG_PASSWORD,
    "INVALID_LOGIN_CREDENTIALS": AuthErrorCode.WRONG_PASSWORD,
    "USER_DISABLED": AuthErrorCode.USER_DISABLED,
    "OPERATION_NOT_ALLOWED": AuthErrorCode.OPERATION_NOT_ALLOWED,
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": AuthErrorCode.REQUIRES_RECENT_LOGIN,
    "TOKEN_EXPIRED": AuthErrorCode.USER_TOKEN_EXPIRED,
    "INVALID_ID_TOKEN": AuthErrorCode.USER_TOKEN_EXPIRED,
    "INVALID_REFRESH_TOKEN": AuthErrorCode.INVALID_USER_TOKEN,
    "FEDERATED_USER_ID_ALREADY_LINKED": AuthErrorCode.CREDENTIAL_ALREADY_IN_USE,
    "PROVIDER_ALREADY_LINKED": AuthErrorCode.PROVIDER_ALREADY_LINKED,
    "INVALID_IDP_RESPONSE": AuthErrorCode.INVALID_CREDENTIAL,
    "TOO_MANY_ATTEMPTS_TRY_LATER": AuthErrorCode.TOO_MANY_REQUESTS,
    "INVALID_API_KEY": AuthErrorCode.INVALID_API_KEY,
    "USER_MISMATCH": AuthErrorCode.USER_MISMATCH,
}


def map_rest_error(message: str) -> AuthErrorCode:
    """Map an Identity Toolkit error message to an :class:`AuthErrorCode`."""
    if message.startswith("API key not valid"):
        return AuthErrorCode.INVALID_API_KEY
    token = message.split(" : ", 1)[0].strip()
    return _REST_ERRORS.get(token, AuthErrorCode.INTERNAL_ERROR)


def _from_millis(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError):
        return None


class _AuthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    local_id: str = Field(alias="localId")
    id_token: str = Field(alias="idToken")
    refresh_token: str = Field(alias="refreshToken")
    expires_in: int = Field(default=3600, alias="expiresIn")
    is_new_user: Optional[bool] = Field(default=None, alias="isNewUser")


class _ProviderInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    provider_id: str = Field(alias="providerId")


class _UserRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    local_id: str = Field(alias="localId")
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    email_verified: bool = Field(default=False, alias="emailVerified")
    provider_user_info: list[_ProviderInfo] = Field(default_factory=list, alias="providerUserInfo")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    last_login_at: Optional[str] = Field(default=None, alias="lastLoginAt")

    def to_identity(self) -> Identity:
        provider_ids = [info.provider_id for info in self.provider_user_info]
        return Identity(
            uid=self.local_id,
            email=self.email,
            display_name=self.display_name,
            is_email_verified=self.email_verified,
            is_anonymous=not provider_ids and not self.email,
            provider_ids=provider_ids,
            creation_date=_from_millis(self.created_at),
            last_sign_in_date=_from_millis(self.last_login_at),
        )


class StoredSession(BaseModel):
    """Signed in session as persisted in local storage."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    is_email_verified: bool = False
    is_anonymous: bool = False
    provider_ids: list[str] = Field(default_factory=list)
    creation_date: Optional[datetime] = None
    last_sign_in_date: Optional[datetime] = None
    id_token: str
    refresh_token: str
    expires_at: datetime

    @classmethod
    def of(cls, identity: Identity, id_token: str, refresh_token: str, expires_at: datetime) -> StoredSession:
        return cls(
            uid=identity.uid,
            email=identity.email,
            display_name=identity.display_name,
            is_email_verified=identity.is_email_verified,
            is_anonymous=identity.is_anonymous,
            provider_ids=list(identity.provider_ids),
            creation_date=identity.creation_date,
            last_sign_in_date=identity.last_sign_in_date,
            id_token=id_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )

    def identity(self) -> Identity:
        return Identity(
            uid=self.uid,
            email=self.email,
            display_name=self.display_name,
            is_email_verified=self.is_email_verified,
            is_anonymous=self.is_anonymous,
            provider_ids=list(self.provider_ids),
            creation_date=self.creation_date,
            last_sign_in_date=self.last_sign_in_date,
        )


class FirebaseRestIdentityProvider:
    """Implements :class:`IdentityProviderPort` with the Firebase Auth REST APIs."""

    def __init__(
        self,
        api_key: str,
        project_id: str = "",
        emulator_host: Optional[str] = None,
        emulator_port: int = 9099,
        timeout: float = 10.0,
        session_storage=None,
        client: Optional[httpx.AsyncClient] = None,
        notify_on_register: bool = True,
    ) -> None:
        self._api_key = api_key
        self._project_id = project_id
        if emulator_host:
            emulator = f"http://{emulator_host}:{emulator_port}/"
            self._identity_toolkit_url = f"{emulator}identitytoolkit.googleapis.com/"
            self._secure_token_url = f"{emulator}securetoken.googleapis.com/"
            logger.info("Using Firebase Auth emulator at %s", emulator)
        else:
            self._identity_toolkit_url = IDENTITY_TOOLKIT_URL
            self._secure_token_url = SECURE_TOKEN_URL
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._session_storage = session_storage
        self._notify_on_register = notify_on_register

        self._identity: Optional[Identity] = None
        self._id_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._expires_at: Optional[datetime] = None

        self._listeners: dict[int, StateChangeListener] = {}
        self._handles = count(1)

        self._restore_session()

    # -- session ---------------------------------------------------------------

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def id_token(self) -> Optional[str]:
        return self._id_token

    def _restore_session(self) -> None:
        if self._session_storage is None:
            return
        try:
            raw = self._session_storage.read(SESSION_KEY)
        except LocalStorageError as e:
            logger.error("Failed to read persisted session: %s", e)
            return
        if not raw:
            return
        try:
            session = StoredSession.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable persisted session: %s", e)
            return
        self._identity = session.identity()
        self._id_token = session.id_token
        self._refresh_token = session.refresh_token
        self._expires_at = session.expires_at
        logger.info("Restored Firebase session for %s", session.uid)

    def _persist_session(self) -> None:
        if self._session_storage is None:
            return
        try:
            if self._identity is None or self._id_token is None or self._refresh_token is None:
                self._session_storage.delete(SESSION_KEY)
                return
            session = StoredSession.of(
                self._identity,
                self._id_token,
                self._refresh_token,
                self._expires_at or datetime.now(tz=timezone.utc),
            )
            self._session_storage.store(SESSION_KEY, session.model_dump_json())
        except LocalStorageError as e:
            logger.error("Failed to persist session: %s", e)

    def _set_tokens(self, id_token: str, refresh_token: Optional[str], expires_in: int) -> None:
        self._id_token = id_token
        if refresh_token:
            self._refresh_token = refresh_token
        self._expires_at = datetime.now(tz=timezone.utc) + timedelta(seconds=expires_in)

    def _clear_session(self) -> None:
        self._identity = None
        self._id_token = None
        self._refresh_token = None
        self._expires_at = None
        self._persist_session()

    def _require_id_token(self) -> str:
        if self._identity is None or self._id_token is None:
            raise IdentityProviderError(AuthErrorCode.INVALID_USER_TOKEN, "No user is signed in")
        return self._id_token

    # -- listeners -------------------------------------------------------------

    def add_state_change_listener(self, listener: StateChangeListener) -> object:
        handle = next(self._handles)
        self._listeners[handle] = listener
        if self._notify_on_register:
            listener(self._identity)
        return handle

    def remove_state_change_listener(self, handle: object) -> None:
        self._listeners.pop(handle, None)

    def _notify(self) -> None:
        identity = self._identity
        for listener in list(self._listeners.values()):
            listener(identity)

    # -- HTTP ------------------------------------------------------------------

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._identity_toolkit_url}{endpoint}"
        try:
            response = await self._client.post(url, params={"key": self._api_key}, json=payload)
        except httpx.TransportError as e:
            logger.warning("Identity Toolkit request %s failed: %s", endpoint, e)
            raise IdentityProviderError(AuthErrorCode.NETWORK_ERROR, str(e)) from e
        return self._handle_response(endpoint, response)

    async def _post_token(self, refresh_token: str) -> dict[str, Any]:
        url = f"{self._secure_token_url}v1/token"
        try:
            response = await self._client.post(
                url,
                params={"key": self._api_key},
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            )
        except httpx.TransportError as e:
            logger.warning("Secure Token request failed: %s", e)
            raise IdentityProviderError(AuthErrorCode.NETWORK_ERROR, str(e)) from e
        return self._handle_response("v1/token", response)

    @staticmethod
    def _handle_response(endpoint: str, response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success:
            if not isinstance(body, dict):
                logger.error("Unexpected response from %s (status=%d)", endpoint, response.status_code)
                raise IdentityProviderError(AuthErrorCode.INTERNAL_ERROR, "Malformed response")
            return body

        message = ""
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = str(body["error"].get("message", ""))
        if message:
            code = map_rest_error(message)
        else:
            code = AuthErrorCode.INTERNAL_ERROR
        logger.debug("%s failed with status=%d message=%s", endpoint, response.status_code, message)
        raise IdentityProviderError(code, message or f"HTTP {response.status_code}")

    async def _lookup(self, id_token: str) -> Identity:
        data = await self._post("v1/accounts:lookup", {"idToken": id_token})
        users = data.get("users") or []
        if not users:
            raise IdentityProviderError(AuthErrorCode.USER_NOT_FOUND, "Account lookup returned no user")
        try:
            return _UserRecord.model_validate(users[0]).to_identity()
        except ValidationError as e:
            raise IdentityProviderError(AuthErrorCode.INTERNAL_ERROR, str(e)) from e

    async def _establish(self, data: dict[str, Any], *, notify: bool = True) -> _AuthResponse:
        try:
            auth = _AuthResponse.model_validate(data)
        except ValidationError as e:
            raise IdentityProviderError(AuthErrorCode.INTERNAL_ERROR, str(e)) from e
        self._set_tokens(auth.id_token, auth.refresh_token, auth.expires_in)
        self._identity = await self._lookup(auth.id_token)
        self._persist_session()
        if notify:
            self._notify()
        return auth

    async def _reload(self) -> None:
        self._identity = await self._lookup(self._require_id_token())
        self._persist_session()

    def _idp_payload(self, credential: OAuthCredential) -> dict[str, Any]:
        post_body = {"id_token": credential.id_token, "providerId": credential.provider_id}
        if credential.raw_nonce:
            post_body["nonce"] = credential.raw_nonce
        return {
            "postBody": urlencode(post_body),
            "requestUri": "http://localhost",
            "returnIdpCredential": True,
            "returnSecureToken": True,
        }

    # -- IdentityProviderPort implementation -----------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> AuthResult:
        data = await self._post(
            "v1/accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        await self._establish(data)
        logger.info("Signed in %s with password", self._identity.uid)
        return AuthResult(self._identity, is_new_user=False, provider_id=EmailPasswordCredential.provider_id)

    async def create_user(self, email: str, password: str) -> AuthResult:
        data = await self._post(
            "v1/accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        await self._establish(data)
        logger.info("Created account %s", self._identity.uid)
        return AuthResult(self._identity, is_new_user=True, provider_id=EmailPasswordCredential.provider_id)

    async def sign_in_anonymously(self) -> AuthResult:
        data = await self._post("v1/accounts:signUp", {"returnSecureToken": True})
        await self._establish(data)
        logger.info("Signed in anonymously as %s", self._identity.uid)
        return AuthResult(self._identity, is_new_user=True)

    async def sign_in_with_credential(self, credential: AuthCredential) -> AuthResult:
        if isinstance(credential, EmailPasswordCredential):
            return await self.sign_in_with_password(credential.email, credential.password)
        data = await self._post("v1/accounts:signInWithIdp", self._idp_payload(credential))
        auth = await self._establish(data)
        logger.info("Signed in %s with %s", self._identity.uid, credential.provider_id)
        return AuthResult(self._identity, is_new_user=auth.is_new_user, provider_id=credential.provider_id)

    def sign_out(self) -> None:
        uid = self._identity.uid if self._identity else None
        self._clear_session()
        logger.info("Signed out %s", uid)
        self._notify()

    async def send_password_reset(self, email: str) -> None:
        await self._post("v1/accounts:sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})

    async def send_email_verification(self) -> None:
        await self._post("v1/accounts:sendOobCode", {"requestType": "VERIFY_EMAIL", "idToken": self._require_id_token()})

    async def update_email(self, email: str) -> None:
        await self._update({"email": email})

    async def update_password(self, password: str) -> None:
        await self._update({"password": password})

    async def update_display_name(self, display_name: str) -> None:
        await self._update({"displayName": display_name})

    async def _update(self, changes: dict[str, Any]) -> None:
        data = await self._post(
            "v1/accounts:update",
            {"idToken": self._require_id_token(), "returnSecureToken": True, **changes},
        )
        if data.get("idToken"):
            self._set_tokens(data["idToken"], data.get("refreshToken"), int(data.get("expiresIn", 3600)))
        await self._reload()

    async def delete(self) -> None:
        await self._post("v1/accounts:delete", {"idToken": self._require_id_token()})
        uid = self._identity.uid if self._identity else None
        self._clear_session()
        logger.info("Deleted account %s", uid)
        self._notify()

    async def reauthenticate(self, credential: AuthCredential) -> AuthResult:
        current = self._identity
        if current is None:
            raise IdentityProviderError(AuthErrorCode.INVALID_USER_TOKEN, "No user is signed in")
        if isinstance(credential, EmailPasswordCredential):
            data = await self._post(
                "v1/accounts:signInWithPassword",
                {"email": credential.email, "password": credential.password, "returnSecureToken": True},
            )
        else:
            data = await self._post("v1/accounts:signInWithIdp", self._idp_payload(credential))
        if data.get("localId") != current.uid:
            raise IdentityProviderError(AuthErrorCode.USER_MISMATCH, "Credential belongs to a different user")
        auth = await self._establish(data, notify=False)
        return AuthResult(self._identity, is_new_user=auth.is_new_user, provider_id=credential.provider_id)

    async def link(self, credential: AuthCredential) -> AuthResult:
        id_token = self._require_id_token()
        if isinstance(credential, EmailPasswordCredential):
            data = await self._post(
                "v1/accounts:update",
                {"idToken": id_token, "email": credential.email, "password": credential.password, "returnSecureToken": True},
            )
        else:
            data = await self._post("v1/accounts:signInWithIdp", {**self._idp_payload(credential), "idToken": id_token})
        # linking keeps the user, so listeners are not notified
        await self._establish(data, notify=False)
        logger.info("Linked %s to %s", credential.provider_id, self._identity.uid)
        return AuthResult(self._identity, is_new_user=False, provider_id=credential.provider_id)

    async def revoke_token(self, provider_id: str, authorization_code: str) -> None:
        await self._post(
            "v2/accounts:revokeToken",
            {
                "providerId": provider_id,
                "tokenType": "CODE",
                "token": authorization_code,
                "idToken": self._require_id_token(),
            },
        )

    async def refresh_token(self, force: bool = False) -> str:
        if self._refresh_token is None:
            raise IdentityProviderError(AuthErrorCode.INVALID_USER_TOKEN, "No refresh token available")
        if (
            not force
            and self._id_token is not None
            and self._expires_at is not None
            and self._expires_at - timedelta(minutes=5) > datetime.now(tz=timezone.utc)
        ):
            return self._id_token

        data = await self._post_token(self._refresh_token)
        try:
            self._set_tokens(data["id_token"], data.get("refresh_token"), int(data.get("expires_in", 3600)))
        except (KeyError, ValueError) as e:
            raise IdentityProviderError(AuthErrorCode.INTERNAL_ERROR, "Malformed token response") from e
        self._persist_session()
        return self._id_token

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
