"""Playwright page objects for the contact-center portal."""

from .base_page import BasePage
from .login_page import LoginPage
from .agent_page import AgentPage
from .cradle_to_grave_page import CradleToGravePage, ReportCriterion
from .session import BrowserSession, Actor

__all__ = [
    "BasePage",
    "LoginPage",
    "AgentPage",
    "CradleToGravePage",
    "ReportCriterion",
    "BrowserSession",
    "Actor"
]
