"""
Single-endpoint HTTP probe used by the network sweep
"""

import asyncio
import json
import logging
from typing import Any

import aiohttp

from .models import EndpointCandidate, ProbeOutcome

logger = logging.getLogger(__name__)

USER_AGENT = "Arduino-Detector/1.0"

class EndpointProber:
    """Issues exactly one bounded-timeout request per (host, endpoint)"""

    def __init__(self, port: int = 80, timeout_seconds: float = 2.0):
        self.port = port
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def build_url(self, host: str, endpoint: EndpointCandidate) -> str:
        return f"http://{host}:{self.port}{endpoint.path}"

    async def probe(self, session: aiohttp.ClientSession, host: str,
                    endpoint: EndpointCandidate) -> ProbeOutcome:
        """
        Probe one endpoint. Never raises for network problems: connection
        errors, timeouts and non-2xx answers all come back as a failed outcome.
        No retries - a miss means the host is treated as absent.
        """
        url = self.build_url(host, endpoint)
        try:
            async with session.request(
                endpoint.method,
                url,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
                allow_redirects=False,
            ) as response:
                text = await response.text(errors="replace")
                headers = dict(response.headers)

                if not 200 <= response.status < 300:
                    return ProbeOutcome(
                        host=host,
                        endpoint=endpoint,
                        succeeded=False,
                        status=response.status,
                        headers=headers,
                        error=f"HTTP {response.status}",
                    )

                return ProbeOutcome(
                    host=host,
                    endpoint=endpoint,
                    succeeded=True,
                    status=response.status,
                    headers=headers,
                    body=parse_body(text),
                )

        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
            logger.debug(f"Probe failed for {url}: {e!r}")
            return ProbeOutcome(host=host, endpoint=endpoint, succeeded=False, error=str(e) or type(e).__name__)

def parse_body(text: str) -> Any:
    """Best-effort JSON decode; anything that is not JSON stays raw text"""
    if not text:
        return text
    try:
        return json.loads(text)
    except ValueError:
        return text
