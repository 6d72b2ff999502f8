"""Probe orchestration.

[CertificateProbe][certprobe.tls.probe.CertificateProbe] wires the pipeline
together for one request:

1. Select the transport strategy and build the SSL context (configuration
   problems end here with UNKNOWN, before any network I/O).
2. Arm one [Deadline][certprobe.utils.deadline.Deadline] and, under it,
   establish the channel, extract the certificate facts and optionally run
   the revocation check.
3. Tear the channel down (abort on failure, graceful close on success) and
   compose the verdict.

Examples:
    ```python
    request = load_request({"host": "mail.example.com", "protocol_upgrade": "smtp"})
    verdict = await CertificateProbe(request).run()
    print(render(verdict))
    ```
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

from certprobe.core.exceptions import ConfigurationError, ProbeError, ProbeTimeoutError
from certprobe.core.logger import Logger
from certprobe.models.constants import ProbeState
from certprobe.utils.deadline import Deadline

from .composer import compose_configuration_error, compose_failure, compose_verdict
from .context import build_ssl_context
from .establisher import SecureConnectionEstablisher
from .extractor import CertificateExtractor
from .ocsp import Clock, RevocationChecker
from .strategies import select_strategy


if TYPE_CHECKING:
    from certprobe.models.request import ProbeRequest
    from certprobe.models.verdict import Verdict

    from .channel import SecureChannel
    from .strategies import Strategy


OCSP_STAGE = "ocsp"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class CertificateProbe:
    """Runs one certificate probe and returns its verdict.

    ``run()`` never raises for configuration or probe failures; those are
    folded into the returned verdict. Anything else is a bug and propagates.

    Args:
        request: The validated probe configuration.
        logger: Structured logger; defaults to ``Logger("certprobe")``.
        revocation_checker: OCSP checker used when ``request.ocsp`` is set.
        clock: Returns the current UTC time for the expiry computation.
    """

    def __init__(
        self,
        request: ProbeRequest,
        logger: Logger | None = None,
        revocation_checker: RevocationChecker | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.request = request
        self._logger = logger or Logger("certprobe")
        self._clock = clock or _utcnow
        self._revocation_checker = revocation_checker or RevocationChecker(
            self._logger.child(OCSP_STAGE), clock=self._clock
        )
        self._establisher: SecureConnectionEstablisher | None = None
        self._stage: str | None = None

    @property
    def stage(self) -> str:
        """Pipeline stage that is active (or was active when the probe stopped)."""
        if self._stage is not None:
            return self._stage
        if self._establisher is None:
            return "idle"
        return (self._establisher.failed_in or self._establisher.state).value

    async def run(self) -> Verdict:
        request = self.request
        try:
            strategy = select_strategy(request.protocol_upgrade)
            context = build_ssl_context(request)
        except ConfigurationError as e:
            self._logger.error("configuration_rejected", error=str(e))
            return compose_configuration_error(e)

        self._logger.info(
            "probe_started",
            host=request.host,
            port=strategy.resolve_port(request),
            strategy=strategy.name,
            timeout_s=request.timeout,
        )
        self._establisher = SecureConnectionEstablisher(
            request, strategy, context, self._logger.child("establisher")
        )
        deadline = Deadline.after(request.timeout)

        channel: SecureChannel | None = None
        succeeded = False
        try:
            async with deadline.timeout():
                channel = await self._establisher.establish(deadline)
                facts = CertificateExtractor.extract(channel)
                if request.ocsp:
                    self._stage = OCSP_STAGE
                    await self._revocation_checker.check(channel, deadline)
            succeeded = True
        except TimeoutError as e:
            error = self._expired(strategy, deadline)
            error.__cause__ = e
            return self._failed(error)
        except ProbeError as e:
            return self._failed(e)
        finally:
            if channel is not None and not succeeded:
                channel.abort()

        await channel.close()
        verdict = compose_verdict(facts, request, now=self._clock())
        self._logger.info(
            "probe_completed",
            severity=verdict.severity.name,
            not_after=facts.not_after.isoformat(),
            peer=facts.peer_address,
            tls_version=facts.tls_version,
            key_algorithm=facts.key_algorithm,
        )
        return verdict

    def _expired(self, strategy: Strategy, deadline: Deadline) -> ProbeError:
        """Error for a deadline that fired in the current stage."""
        establisher = self._establisher
        if (
            strategy.silence_ignores_upgrade
            and establisher is not None
            and establisher.failed_in is ProbeState.HANDSHAKING
        ):
            return establisher.upgrade_ignored(f"no handshake within {deadline.budget}s")
        return ProbeTimeoutError(f"no result within {deadline.budget}s (state={self.stage})")

    def _failed(self, error: ProbeError) -> Verdict:
        self._logger.warning("probe_failed", stage=self.stage, error=str(error))
        return compose_failure(error)


async def run_probe(request: ProbeRequest, logger: Logger | None = None) -> Verdict:
    """Run a single probe for ``request`` and return its verdict."""
    return await CertificateProbe(request, logger=logger).run()
