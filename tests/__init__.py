"""
Test suite for Crypto Crocodiles

Contains:
- tests/unit/          : Unit tests for individual contracts and host modules
- tests/integration/   : Full governance flows (propose → vote → queue → execute)
"""
