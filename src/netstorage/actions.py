"""ACS action-header encoding.

Every request names its operation in the ``X-Akamai-ACS-Action`` header::

    version=1&action=<name>[&<k>=<v>...][&format=xml]

The rendered string is signed byte-for-byte, so parameter order is kept
exactly as given.
"""

import urllib.parse
from dataclasses import dataclass, field
from enum import Enum

ACTION_HEADER = "X-Akamai-ACS-Action"
ACTION_VERSION = 1


class Action(str, Enum):
    """Operation names understood by the ACS protocol."""

    UPLOAD = "upload"
    DOWNLOAD = "download"
    DELETE = "delete"
    RENAME = "rename"
    RMDIR = "rmdir"
    MKDIR = "mkdir"
    STAT = "stat"
    DIR = "dir"
    LIST = "list"
    DU = "du"


# Actions whose responses are requested as XML
XML_ACTIONS = frozenset({"dir", "download", "du", "stat", "list"})


@dataclass(frozen=True)
class ActionDirective:
    """A single action header value before rendering.

    Attributes:
        name: The action name.
        parameters: Ordered parameter mapping.
        version: Protocol version, always 1.
    """

    name: str
    parameters: dict[str, str] = field(default_factory=dict)
    version: int = ACTION_VERSION

    @property
    def wants_xml(self) -> bool:
        return self.name in XML_ACTIONS

    def render(self) -> str:
        """Render the directive to its header string.

        Returns:
            The action header value.
        """
        header = f"version={self.version}&action={urllib.parse.quote(self.name, safe='')}"
        if self.parameters:
            header += "&" + urllib.parse.urlencode(list(self.parameters.items()))
        if self.wants_xml:
            header += "&format=xml"
        return header


def encode_action(name: str | Action, params: dict[str, str] | None = None) -> str:
    """Build the ``X-Akamai-ACS-Action`` header value.

    Args:
        name: The action name.
        params: Optional ordered parameters, form-encoded into the header.

    Returns:
        The rendered header value.
    """
    if isinstance(name, Action):
        name = name.value
    return ActionDirective(name=name, parameters=dict(params or {})).render()


def action_name(header: str) -> str:
    """Extract the action name from a rendered header value.

    Returns an empty string when the header carries no action.
    """
    for key, value in urllib.parse.parse_qsl(header, keep_blank_values=True):
        if key == "action":
            return value
    return ""
