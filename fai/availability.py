"""Model Availability - probe the runtime and render its status."""

import logging
from dataclasses import dataclass

from fai.output import AVAILABLE, UNAVAILABLE
from fai.runtime.base import Capability, ModelRuntime, UnavailableReason

HEADER = "Model Availability Check:"

REASON_TEXT = {
    UnavailableReason.DEVICE_INELIGIBLE: "This system is not eligible for the model runtime",
    UnavailableReason.FEATURE_DISABLED: "The model runtime is not enabled",
    UnavailableReason.ASSETS_PREPARING: "Model assets are being prepared (downloading...)",
    UnavailableReason.UNKNOWN: "Unknown",
}


@dataclass(frozen=True)
class AvailabilityInfo:
    default_available: bool
    tagging_available: bool
    unavailable_reason: UnavailableReason | None = None
    detail: str = ""
    runtime_name: str = ""
    model: str = ""

    @property
    def status_summary(self) -> str:
        """Concise status string for CLI display"""
        return "Available" if self.default_available else "Not Available"

    def describe(self) -> str:
        lines = [HEADER, ""]
        if self.default_available:
            lines.append(f"{AVAILABLE} Default model is available")
            lines.append(f"Runtime: {self.runtime_name}")
            lines.append(f"Content tagging model: {AVAILABLE if self.tagging_available else UNAVAILABLE}")
        else:
            lines.append(f"{UNAVAILABLE} Default model is not available")
            reason = self.unavailable_reason or UnavailableReason.UNKNOWN
            lines.append(f"Reason: {REASON_TEXT[reason]}")
            if self.detail:
                lines.append(f"Hint: {self.detail}")
        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict:
        return {
            "status": self.status_summary,
            "default_available": self.default_available,
            "tagging_available": self.tagging_available,
            "unavailable_reason": self.unavailable_reason.value if self.unavailable_reason else None,
            "runtime": self.runtime_name,
            "model": self.model,
        }


class ModelAvailability:
    """Checks the default and content tagging capabilities independently."""

    def __init__(self, runtime: ModelRuntime, logger: logging.Logger | None = None):
        self.runtime = runtime
        self.logger = logger or logging.getLogger(__name__)

    def check(self) -> AvailabilityInfo:
        self.logger.debug("Checking model availability...")
        default = self.runtime.availability(Capability.DEFAULT)
        tagging = self.runtime.availability(Capability.TAGGING)

        info = AvailabilityInfo(
            default_available=default.available,
            tagging_available=tagging.available,
            unavailable_reason=None if default.available else (default.reason or UnavailableReason.UNKNOWN),
            detail=default.detail,
            runtime_name=self.runtime.name,
            model=self.runtime.model,
        )
        self.logger.info("Model availability check completed: Default=%s, Tagging=%s",
                         info.default_available, info.tagging_available)
        return info

    def describe(self) -> str:
        return self.check().describe()
