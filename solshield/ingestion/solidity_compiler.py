"""Solidity parser adapter — solc AST via py-solc-x."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import solcx
from solcx.exceptions import (
    DownloadError,
    SolcError,
    SolcInstallationError,
    SolcNotInstalled,
    UnsupportedVersionError,
)

from solshield.core.config import get_settings
from solshield.core.errors import ParseError

logger = logging.getLogger(__name__)

_PRAGMA_RE = re.compile(r"pragma\s+solidity\s+[\^~>=<]*\s*([\d.]+)")


@dataclass
class ParseResult:
    """AST output for one parsed source file."""

    filename: str
    source_code: str
    solc_version: str
    ast: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def contract_nodes(self) -> list[dict[str, Any]]:
        """ContractDefinition nodes of the source unit, in declaration order."""
        return [
            node for node in self.ast.get("nodes", [])
            if isinstance(node, dict) and node.get("nodeType") == "ContractDefinition"
        ]

    def struct_names(self) -> tuple[str, ...]:
        """Names of structs declared at file level."""
        return tuple(
            node.get("name", "") for node in self.ast.get("nodes", [])
            if isinstance(node, dict) and node.get("nodeType") == "StructDefinition"
        )


class SolidityCompiler:
    """Parse Solidity source code into a solc AST."""

    def __init__(self, version: str | None = None) -> None:
        self.version = version or get_settings().solc_version or None

    def parse(self, source_code: str, filename: str = "Contract.sol") -> ParseResult:
        """Run solc on the source and return its AST.

        solc stops after parsing: imports are not resolved and no type
        checking or code generation runs, so files importing packages that
        are not installed locally still parse. Only the ``ast`` output is
        requested.

        Raises:
            ParseError: the compiler could not be installed or rejected the source
        """
        try:
            solc_version = self._ensure_installed(source_code)

            standard_input = {
                "language": "Solidity",
                "sources": {
                    filename: {"content": source_code}
                },
                "settings": {
                    "stopAfter": "parsing",
                    "outputSelection": {
                        "*": {"": ["ast"]}
                    },
                },
            }

            output = solcx.compile_standard(
                standard_input,
                solc_version=solc_version,
                allow_paths=".",
            )
        except (SolcError, SolcNotInstalled, SolcInstallationError,
                UnsupportedVersionError, DownloadError) as e:
            raise ParseError(f"Failed to parse {filename}: {e}") from e

        warnings = [
            error.get("formattedMessage", error.get("message", ""))
            for error in output.get("errors", [])
            if error.get("severity") != "error"
        ]
        for warning in warnings:
            logger.debug("solc: %s", warning.strip())

        source_data = output.get("sources", {}).get(filename, {})
        return ParseResult(
            filename=filename,
            source_code=source_code,
            solc_version=str(solc_version),
            ast=source_data.get("ast", {}),
            warnings=warnings,
        )

    def _ensure_installed(self, source_code: str) -> str:
        """Pick the compiler version and install it on demand."""
        solc_version = (
            self.version
            or self._detect_version(source_code)
            or get_settings().solc_default_version
        )
        installed = {str(v) for v in solcx.get_installed_solc_versions()}
        if solc_version not in installed:
            logger.info("Installing solc %s", solc_version)
            solcx.install_solc(solc_version)
        return solc_version

    @staticmethod
    def _detect_version(source_code: str) -> str | None:
        """Detect Solidity compiler version from pragma statement."""
        match = _PRAGMA_RE.search(source_code)
        if match:
            return match.group(1)
        return None
