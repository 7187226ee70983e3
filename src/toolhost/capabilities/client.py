"""Capabilities a client declares in its initialize request."""

from dataclasses import dataclass
from typing import Any


@dataclass
class SamplingCapability:
    """
    Client will run LLM completions on the server's behalf.

    Gates sampling/createMessage.
    """

    pass


@dataclass
class RootsCapability:
    """Client exposes filesystem roots."""

    list_changed: bool = False


@dataclass
class ElicitationCapability:
    """
    Client can ask its user for input.

    Gates elicitation/create in form and URL mode.
    """

    form: bool = True
    """Client renders JSON Schema forms."""

    url: bool = False
    """Client can send the user to a URL."""


@dataclass
class ClientCapabilities:
    """
    Parsed client capabilities from the initialize request.

    Consulted before every server-initiated request so unsupported
    features fail fast instead of waiting for a timeout.
    """

    sampling: SamplingCapability | None = None
    roots: RootsCapability | None = None
    elicitation: ElicitationCapability | None = None
    experimental: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ClientCapabilities":
        """
        Parse the 'capabilities' object of an initialize request.

        A bare `"elicitation": {}` predates per-mode declarations and
        counts as form support.
        """
        data = data or {}
        caps = cls()

        if isinstance(data.get("sampling"), dict):
            caps.sampling = SamplingCapability()

        roots = data.get("roots")
        if isinstance(roots, dict):
            caps.roots = RootsCapability(list_changed=bool(roots.get("listChanged", False)))

        elicitation = data.get("elicitation")
        if isinstance(elicitation, dict):
            has_form = "form" in elicitation
            has_url = "url" in elicitation
            if not has_form and not has_url:
                has_form = True
            caps.elicitation = ElicitationCapability(form=has_form, url=has_url)

        caps.experimental = data.get("experimental")
        return caps

    def to_dict(self) -> dict[str, Any]:
        caps: dict[str, Any] = {}
        if self.sampling is not None:
            caps["sampling"] = {}
        if self.roots is not None:
            caps["roots"] = {"listChanged": self.roots.list_changed}
        if self.elicitation is not None:
            elicit: dict[str, Any] = {}
            if self.elicitation.form:
                elicit["form"] = {}
            if self.elicitation.url:
                elicit["url"] = {}
            caps["elicitation"] = elicit
        if self.experimental is not None:
            caps["experimental"] = self.experimental
        return caps

    def supports_sampling(self) -> bool:
        return self.sampling is not None

    def supports_form_elicitation(self) -> bool:
        return self.elicitation is not None and self.elicitation.form

    def supports_url_elicitation(self) -> bool:
        return self.elicitation is not None and self.elicitation.url
