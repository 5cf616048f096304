import hashlib
import time
from supabase import Client
from kitchen_ops.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from fastapi import HTTPException
from typing import Dict, Any, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class TokenCache:
    """Resolved users keyed by token hash, so parallel requests of one page share a single auth call"""

    def __init__(self, ttl_seconds: int = 60, max_size: int = 500):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._entries: Dict[str, Tuple[Dict[str, Any], float]] = {}

    @staticmethod
    def key(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(self.key(token))
        if not entry:
            return None
        user_data, expiry = entry
        if time.monotonic() >= expiry:
            self._entries.pop(self.key(token), None)
            return None
        return user_data

    def put(self, token: str, user_data: Dict[str, Any]):
        if len(self._entries) < self.max_size:
            self._entries[self.key(token)] = (user_data, time.monotonic() + self.ttl_seconds)

    def drop(self, token: str):
        self._entries.pop(self.key(token), None)

    def clear(self):
        self._entries.clear()


token_cache = TokenCache()


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("profiles")\
            .select("id, nome, ativo")\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Sign up with Supabase Auth; nome and telefone travel in the user metadata for the profile trigger"""
        email = register_data.email.lower()
        metadata = {
            key: value for key, value in (("nome", register_data.nome), ("telefone", register_data.telefone))
            if value
        }
        try:
            auth_response = self.supabase.auth.sign_up({
                "email": email,
                "password": register_data.password,
                "options": {"data": metadata}
            })
        except Exception as e:
            message = str(e).lower()
            if "already registered" in message or "already exists" in message:
                raise HTTPException(status_code=400, detail="A user with this email already exists")
            logger.error(f"Sign-up of {email} failed: {e}")
            raise HTTPException(status_code=500, detail=f"Registration failed: {str(e)}")

        if not auth_response.user:
            raise HTTPException(status_code=400, detail="Failed to register user")
        logger.info(f"Registered user {auth_response.user.id}")
        return RegisterResponse(
            user_id=auth_response.user.id,
            email=auth_response.user.email or email,
            message="User registered successfully"
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Password login. Users whose profile was deactivated are turned away."""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email.lower(),
                "password": login_data.password
            })
        except Exception as e:
            message = str(e).lower()
            if "invalid" in message or "credentials" in message:
                raise HTTPException(status_code=401, detail="Invalid email or password")
            raise HTTPException(status_code=500, detail=f"Login failed: {str(e)}")

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid email or password")

        try:
            profile = self._profile(auth_response.user.id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if profile and profile.get("ativo") is False:
            self.supabase.auth.sign_out()
            raise HTTPException(status_code=403, detail="This account has been deactivated")

        return TokenResponse(
            access_token=auth_response.session.access_token,
            user_id=auth_response.user.id,
            email=auth_response.user.email or login_data.email,
            nome=(profile or {}).get("nome")
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve the bearer token to the auth user (id, email, metadata)"""
        cached = token_cache.get(token)
        if cached:
            return cached
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.debug(f"Token rejected: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user = user_response.user
        user_data = {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
            "app_metadata": user.app_metadata or {},
        }
        token_cache.put(token, user_data)
        return user_data

    def logout(self, token: str) -> bool:
        token_cache.drop(token)
        try:
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning(f"Supabase sign_out failed: {e}")
            return False
