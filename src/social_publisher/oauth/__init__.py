"""OAuth credential lifecycle.

Usage:
    from social_publisher.oauth import OAuthService, TokenManager, InMemoryConnectionStore

    oauth = OAuthService(registry, settings)
    manager = TokenManager(InMemoryConnectionStore(), oauth, cipher)

    request = oauth.generate_authorization_url("twitter", user_id)
    ...
    state = oauth.validate_oauth_state(callback_state)
    tokens = await oauth.exchange_code_for_tokens(state.platform, code, state.code_verifier)
    profile = await oauth.fetch_user_profile(state.platform, tokens.access_token)
    await manager.store_connection(state.user_id, state.platform, tokens, profile)
"""

from .models import (
    AuthorizationRequest,
    BatchRefreshResult,
    ConnectionHealth,
    ConnectionStatus,
    OAuthConnection,
    OAuthState,
    TokenSet,
    UserProfile,
)
from .service import OAuthService
from .state import StateNonceCache, create_state, decode_state
from .store import ConnectionStore, InMemoryConnectionStore
from .token_manager import TokenManager

__all__ = [
    "AuthorizationRequest",
    "BatchRefreshResult",
    "ConnectionHealth",
    "ConnectionStatus",
    "OAuthConnection",
    "OAuthState",
    "TokenSet",
    "UserProfile",
    "OAuthService",
    "StateNonceCache",
    "create_state",
    "decode_state",
    "ConnectionStore",
    "InMemoryConnectionStore",
    "TokenManager",
]
