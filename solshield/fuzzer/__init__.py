"""Foundry test synthesis.

  - Structured Solidity source builder with an explicit render step
  - Ghost-variable update table and seeding helpers
  - Invariant test files (handler + assertions)
"""
