"""
UserAgentManager - realistic browser headers for page and RPC requests.

Without a current desktop User-Agent and an Accept-Language header the
platform serves a bot-restricted page that omits caption data.
"""

from typing import Dict, Optional


class UserAgentManager:
    """
    Provides User-Agent strings and complete header sets per request type.
    """

    USER_AGENT_CONFIG = {
        "default": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36",
        "fallback": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
        "mobile": "Mozilla/5.0 (Linux; Android 11; SM-G991B) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/127.0.0.0 Mobile Safari/537.36",
        "firefox": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:128.0) Gecko/20100101 Firefox/128.0",
    }

    DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"

    def __init__(self, accept_language: Optional[str] = None):
        self.accept_language = accept_language or self.DEFAULT_ACCEPT_LANGUAGE

    def get_user_agent(self, request_type: str = "default") -> str:
        """User-Agent for a request type; unknown types get the default."""
        user_agent = self.USER_AGENT_CONFIG.get(request_type)
        if not self.validate_user_agent(user_agent):
            user_agent = self.USER_AGENT_CONFIG["default"]
        return user_agent

    def get_headers(self, additional_headers: Optional[Dict[str, str]] = None,
                    request_type: str = "default") -> Dict[str, str]:
        """
        Complete header dictionary with User-Agent and Accept-Language.

        Args:
            additional_headers: Headers layered on top (they win on conflict)
            request_type: Key into USER_AGENT_CONFIG

        Returns:
            dict of headers
        """
        headers = {
            "User-Agent": self.get_user_agent(request_type),
            "Accept-Language": self.accept_language,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }
        if additional_headers:
            headers.update(additional_headers)
        return headers

    @staticmethod
    def validate_user_agent(user_agent: Optional[str]) -> bool:
        """A usable UA is a non-trivial Mozilla/... string."""
        return bool(user_agent) and user_agent.startswith("Mozilla/") and len(user_agent) > 40
