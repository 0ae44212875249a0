"""
Navigation module.

View frame stack and deep-link handling.
"""

from voicebook.navigation.stack import NavigationStack, View, ViewFrame, parse_deep_link

__all__ = ["NavigationStack", "View", "ViewFrame", "parse_deep_link"]
