"""
Test suite for the staking client and management commands.

Test Categories:
- Address derivation against known mainnet receipts
- Instruction encoding and account ordering
- Account layouts and stake positions
- Client orchestration with a mocked RPC
- Configuration, keypairs and management commands
"""
