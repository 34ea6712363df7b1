"""
Network sweep: every host x every endpoint candidate, probed concurrently
"""

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

import aiohttp

from .classifier import ResponseClassifier
from .models import DEFAULT_ENDPOINTS, DiscoveredDevice, EndpointCandidate, SweepResult
from .network_discovery import NetworkDiscovery
from .prober import EndpointProber

from http_helper import create_probe_session

logger = logging.getLogger(__name__)

SessionFactory = Callable[[float, int], aiohttp.ClientSession]

class SweepScheduler:
    """
    Launches one probe task per (host, endpoint) and waits for all of them.

    Two timeout layers apply: the HTTP client's request timeout inside the
    prober, and an outer per-task timeout that cancels the probe outright.
    Outstanding probes are capped by a semaphore; the per-task timeout starts
    once a slot is acquired.
    """

    def __init__(
        self,
        config: Dict,
        prober: Optional[EndpointProber] = None,
        classifier: Optional[ResponseClassifier] = None,
        network_discovery: Optional[NetworkDiscovery] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.config = config
        self.probe_timeout = config.get('probe_timeout_seconds', 2.0)
        self.task_timeout = config.get('task_timeout_seconds', 1.0)
        self.max_concurrency = config.get('max_concurrency', 256)
        self.endpoints = self._load_endpoints(config.get('endpoints'))

        self.prober = prober or EndpointProber(
            port=config.get('port', 80),
            timeout_seconds=self.probe_timeout,
        )
        self.classifier = classifier or ResponseClassifier(
            keywords=config.get('keywords'),
            require_keyword_match=config.get('require_keyword_match', False),
        )
        self.network_discovery = network_discovery or NetworkDiscovery(config)
        self.session_factory = session_factory or create_probe_session

    @staticmethod
    def _load_endpoints(raw: Optional[Sequence]) -> List[EndpointCandidate]:
        if not raw:
            return list(DEFAULT_ENDPOINTS)
        endpoints = []
        for item in raw:
            if isinstance(item, EndpointCandidate):
                endpoints.append(item)
            elif isinstance(item, dict):
                endpoints.append(EndpointCandidate(item['path'], item.get('method', 'GET').upper()))
            else:
                endpoints.append(EndpointCandidate(str(item), 'GET'))
        return endpoints

    async def run_sweep(self) -> SweepResult:
        """Sweep the detected network; returns qualifying hits in enumeration order"""
        start_time = time.time()
        network = self.network_discovery.detect_network()
        hosts = self.network_discovery.generate_host_list(network)
        targets = [(host, endpoint) for host in hosts for endpoint in self.endpoints]

        logger.info(f"[SEARCH] Scanning {network}: {len(hosts)} hosts x {len(self.endpoints)} endpoints "
                    f"({len(targets)} probes, max {self.max_concurrency} in flight)")

        semaphore = asyncio.Semaphore(self.max_concurrency)
        observed = 0
        timed_out = 0

        async with self.session_factory(self.probe_timeout, self.max_concurrency) as session:

            async def probe_target(host: str, endpoint: EndpointCandidate) -> Optional[DiscoveredDevice]:
                nonlocal observed, timed_out
                async with semaphore:
                    try:
                        outcome = await asyncio.wait_for(
                            self.prober.probe(session, host, endpoint),
                            timeout=self.task_timeout,
                        )
                    except asyncio.TimeoutError:
                        timed_out += 1
                        return None

                if outcome.succeeded:
                    observed += 1
                if not self.classifier.classify(outcome):
                    return None

                logger.debug(f"Qualifying response from {host}{endpoint.path}")
                return DiscoveredDevice(
                    ip=host,
                    endpoint=endpoint.path,
                    method=endpoint.method,
                    response=outcome.body,
                )

            results = await asyncio.gather(
                *(probe_target(host, endpoint) for host, endpoint in targets),
                return_exceptions=True,
            )

        hits = []
        for result in results:
            if isinstance(result, DiscoveredDevice):
                hits.append(result)
            elif isinstance(result, Exception):
                logger.debug(f"Probe task raised: {result!r}")

        duration = time.time() - start_time
        logger.info(f"[PASS] Sweep of {network} complete: {len(hits)} qualifying responses, "
                    f"{observed} answered, {timed_out} timed out in {duration:.1f}s")

        return SweepResult(
            hits=hits,
            network=network,
            probes_attempted=len(targets),
            probes_observed=observed,
            probes_timed_out=timed_out,
            duration_seconds=duration,
        )
