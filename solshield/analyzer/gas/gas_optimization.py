"""Gas optimization detectors — advisory suggestions that never affect the score."""

from __future__ import annotations

from solshield.analyzer.base_detector import GasDetector
from solshield.core.model import ContractModel, Visibility
from solshield.core.types import GasCategory, GasFinding

# Indexed-parameter quota per event
MAX_INDEXED = 3


class EventIndexingDetector(GasDetector):
    """Suggest indexing value-type event parameters up to the topic quota."""

    DETECTOR_ID = "GAS-001"
    NAME = "Unindexed Event Parameters"
    DESCRIPTION = (
        "Indexed event parameters are stored as log topics and can be "
        "filtered by off-chain consumers without decoding log data."
    )
    CATEGORY = "gas_optimization"
    GAS_CATEGORY = GasCategory.EVENT_INDEXING

    def detect(self, model: ContractModel) -> list[GasFinding]:
        findings: list[GasFinding] = []

        for event in model.events:
            quota = MAX_INDEXED - event.indexed_count
            if quota <= 0:
                continue
            candidates = [
                p.name or f"arg{i}"
                for i, p in enumerate(event.parameters)
                if not p.indexed and p.type.is_value_type
            ][:quota]
            if not candidates:
                continue

            names = ", ".join(candidates)
            findings.append(self._make_gas(
                id=f"gas_event_index_{event.name}",
                title=f"Index parameters of event {event.name}",
                description=(
                    f"Event {event.name} has {event.indexed_count} indexed parameter(s); "
                    f"value-type parameters [{names}] could be indexed."
                ),
                target=event.name,
                suggestion=f"Mark [{names}] as indexed in event {event.name}",
                line=event.line,
            ))

        return findings


class ImmutableCandidateDetector(GasDetector):
    """State variables assigned only in the constructor."""

    DETECTOR_ID = "GAS-002"
    NAME = "Immutable Candidate"
    DESCRIPTION = (
        "A state variable written only in the constructor can be declared "
        "immutable, replacing an SLOAD with a bytecode constant."
    )
    CATEGORY = "gas_optimization"
    GAS_CATEGORY = GasCategory.IMMUTABLE

    def detect(self, model: ContractModel) -> list[GasFinding]:
        constructor_writes: set[str] = set()
        other_writes: set[str] = set()
        for fn in model.functions:
            roots = {sc.root for sc in fn.state_changes}
            if fn.is_constructor:
                constructor_writes |= roots
            else:
                other_writes |= roots

        findings: list[GasFinding] = []
        for var in model.state_vars:
            if var.constant or var.immutable:
                continue
            if var.type.is_mapping or var.type.is_array or var.type.is_dynamic_bytes:
                continue
            if model.is_struct(var.type):
                continue
            if var.name not in constructor_writes or var.name in other_writes:
                continue

            findings.append(self._make_gas(
                id=f"gas_immutable_{var.name}",
                title=f"{var.name} can be immutable",
                description=(
                    f"{var.name} is only assigned in the constructor. Declaring it "
                    "immutable avoids a storage read on every access."
                ),
                target=var.name,
                suggestion=f"Declare {var.name} as `{var.type} immutable`",
                line=var.line,
            ))
        return findings


class CalldataParameterDetector(GasDetector):
    """External function parameters copied to memory instead of read from calldata."""

    DETECTOR_ID = "GAS-003"
    NAME = "Use calldata for External Parameters"
    DESCRIPTION = (
        "Array, string and bytes parameters of external functions can be "
        "read directly from calldata instead of being copied to memory."
    )
    CATEGORY = "gas_optimization"
    GAS_CATEGORY = GasCategory.CALLDATA

    def detect(self, model: ContractModel) -> list[GasFinding]:
        findings: list[GasFinding] = []

        for fn in model.functions:
            if fn.visibility != Visibility.EXTERNAL:
                continue
            for i, param in enumerate(fn.parameters):
                if not (param.type.is_array or param.type.is_dynamic_bytes):
                    continue
                if param.storage_location == "calldata":
                    continue
                name = param.name or f"arg{i}"
                findings.append(self._make_gas(
                    id=f"gas_calldata_{fn.name}_{name}",
                    title=f"Use calldata for {fn.name}({name})",
                    description=(
                        f"Parameter {name} of external function {fn.name}() is "
                        f"a {param.type} copied into memory."
                    ),
                    target=f"{fn.name}.{name}",
                    suggestion=f"Declare {name} as `{param.type} calldata`",
                    line=fn.line,
                ))

        return findings
