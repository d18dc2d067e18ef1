"""Scan configuration.

ScanConfig is passed explicitly to the drivers; nothing is read from the
environment.

Example::

    from feedscan.common.param_models import ScanConfig

    config = ScanConfig(variant="headlines", timeout=10.0)
    result = SyncDriver(config).run("https://boyneramblers.com")
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ScanConfig(BaseModel):
    """Options for one scan.

    Attributes:
        variant: Which profile to scan with ("articles" or "headlines").
        base_url: Base URL for relative hrefs. The drivers default this to
            the fetched URL; local scans leave it unset.
        strict_class_tokens: Match class tokens exactly instead of by
            substring.
        use_dom_fallback: Buffer the document and tokenize it through a full
            lxml tree instead of the streaming pull parser.
        timeout: Fetch timeout in seconds (None = no timeout).
    """

    model_config = ConfigDict(frozen=True)

    variant: Literal["articles", "headlines"] = "articles"
    base_url: str | None = None
    strict_class_tokens: bool = False
    use_dom_fallback: bool = False
    timeout: float | None = Field(default=None, gt=0)
