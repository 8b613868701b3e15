"""Abstract base class for vision analyzers.

All analyzer implementations must conform to this interface, enabling
the system to swap model backends without changing the live loop.
Providers raise ``AnalyzerError`` / ``AnalyzerRateLimited`` from their
request hook; ``VisionAnalyzer.analyze`` turns every reply into a
tagged ``Parsed`` / ``Degraded`` / ``Failed`` outcome.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod

from pydantic import ValidationError

from adroast.domain.models import CapturedFrame, Degraded, Failed, Observation, Parsed
from adroast.utils.imaging import numpy_to_base64_jpeg, resize_for_mllm

logger = logging.getLogger(__name__)


PERSONA_PROMPT = """You are Snarky, a sharp-witted TV ad critic providing real-time commentary.

WHO YOU ARE:
- A jaded but passionate ad connoisseur who has seen every trope, celebrity cameo, and narrative trick
- You know what brands are REALLY selling underneath the spectacle
- You love the craft even when roasting the result

YOUR VOICE -- a blend of:
- Larry David's refusal to be impressed
- RuPaul's sharp, clever delivery
- Bill Murray's deadpan wit
- Wanda Sykes' biting humor

RULES:
- 1-2 SHORT sentences max. Punchy and quick.
- NEVER start with "Ah" or "Oh" or "Well" -- vary your openings
- Only mention "Super Bowl" if you see actual game footage or Super Bowl branding
- Sharp and snarky, never cruel
- Make every word count"""

RESPONSE_INSTRUCTIONS = """You're watching TV ads frame by frame. Share your snarky take on what you see.

Previous observations: {context}

Respond with a JSON object:
{{
  "commentary": "Your sharp, witty take on this frame",
  "theory": "Your current theory of what this ad is selling",
  "brandGuess": "Brand name if visible or suspected, null otherwise",
  "confidence": "guessing|suspicious|certain",
  "tropesDetected": ["array of advertising tropes you notice"],
  "isNewAd": false,
  "adSummaryOneLiner": ""
}}

IMPORTANT: If this frame is clearly from a DIFFERENT ad than your previous observations (different brand, completely different setting/style/product), set "isNewAd": true and provide "adSummaryOneLiner" -- a single sharp, memorable one-liner summing up the PREVIOUS ad in Snarky's voice. Otherwise keep isNewAd false and adSummaryOneLiner empty."""

USER_PROMPT = "What do you see?"
EMPTY_CONTEXT = "Just tuned in."
DEGRADED_PLACEHOLDER = "Analyzing..."


class VisionAnalyzer(ABC):
    """Abstract interface for vision-capable language model backends."""

    def __init__(
        self,
        model: str,
        system_prompt: str | None = None,
        image_detail: str = "low",
        jpeg_quality: int = 80,
    ) -> None:
        self._model = model
        self._system_prompt = system_prompt or PERSONA_PROMPT
        self._image_detail = image_detail
        self._jpeg_quality = jpeg_quality

    @property
    def model(self) -> str:
        return self._model

    async def analyze(self, frame: CapturedFrame, context: str = "") -> Parsed | Degraded | Failed:
        """Send one frame plus the rolling context and classify the reply.

        Never raises for transport or parse problems; those come back as
        ``Failed`` and ``Degraded`` respectively.
        """
        instructions = self.build_instructions(context)
        b64_image = self._encode_frame(frame)
        try:
            raw_text = await self._request(b64_image, instructions)
        except AnalyzerRateLimited as e:
            logger.warning("Analyzer rate limited (retry_after=%s): %s", e.retry_after, e)
            return Failed(reason=str(e), rate_limited=True, retry_after=e.retry_after)
        except AnalyzerError as e:
            logger.error("Analyzer request failed: %s", e)
            return Failed(reason=str(e))
        logger.debug("Analyzer raw response: %s", raw_text[:200])
        return parse_reply(raw_text)

    def build_instructions(self, context: str) -> str:
        """Persona plus response schema, with the rolling context folded in."""
        return (
            f"{self._system_prompt}\n\n"
            f"{RESPONSE_INSTRUCTIONS.format(context=context.strip() or EMPTY_CONTEXT)}"
        )

    @abstractmethod
    async def _request(self, b64_image: str, instructions: str) -> str:
        """Send the encoded frame and instructions; return the raw reply text.

        Raises:
            AnalyzerRateLimited: If the backend asks the caller to back off.
            AnalyzerError: For any other transport or backend failure.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the backend is reachable and authenticated."""
        ...

    async def aclose(self) -> None:
        """Release any client held by the analyzer. Default: nothing to do."""

    def _encode_frame(self, frame: CapturedFrame) -> str:
        resized = resize_for_mllm(frame.image)
        return numpy_to_base64_jpeg(resized, quality=self._jpeg_quality)


def parse_reply(raw_response: str) -> Parsed | Degraded:
    """Classify a raw model reply as a parsed or degraded observation."""
    content = _strip_code_fence(raw_response or "")

    json_str = content
    brace_match = re.search(r"\{.*\}", json_str, re.DOTALL)
    if brace_match:
        json_str = brace_match.group(0)

    data = None
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError:
        # Fix invalid escape sequences by replacing lone backslashes
        try:
            fixed = re.sub(r'\\(?!["\\/bfnrtu])', r"\\\\", json_str)
            data = json.loads(fixed)
        except json.JSONDecodeError:
            pass

    if isinstance(data, dict):
        try:
            observation = Observation.model_validate(data)
            return Parsed(observation=observation, raw_text=raw_response)
        except ValidationError as e:
            logger.warning("Analyzer reply did not match schema: %s", e.error_count())
        # Keep only the commentary; the rest of the reply is untrusted
        commentary = str(data.get("commentary") or "").strip()
    else:
        logger.warning("Failed to parse analyzer reply as JSON")
        commentary = re.sub(r'[{}"]', "", content).strip()

    return Degraded(
        observation=Observation(commentary_text=commentary or DEGRADED_PLACEHOLDER),
        raw_text=raw_response,
    )


def _strip_code_fence(text: str) -> str:
    text = re.sub(r"^```(?:json)?\s*", "", text.strip(), flags=re.IGNORECASE)
    return re.sub(r"\s*```$", "", text).strip()


def parse_retry_after(value: str | None) -> float | None:
    """Read a Retry-After header given in seconds."""
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class AnalyzerError(Exception):
    """Raised when a request to the vision backend fails."""

    def __init__(self, message: str, provider: str = "", raw_response: str = "") -> None:
        super().__init__(message)
        self.provider = provider
        self.raw_response = raw_response


class AnalyzerRateLimited(AnalyzerError):
    """Raised when the backend or proxy says to try again later."""

    def __init__(self, message: str, provider: str = "", retry_after: float | None = None) -> None:
        super().__init__(message, provider=provider)
        self.retry_after = retry_after
