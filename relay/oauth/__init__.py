"""OAuth authorization-code exchange proxies."""

from .base import ANILIST, MYANIMELIST, BodyEncoding, OAuthProviderSpec
from .proxy import OAuthExchangeProxy

__all__ = ["ANILIST", "MYANIMELIST", "BodyEncoding", "OAuthExchangeProxy", "OAuthProviderSpec"]
