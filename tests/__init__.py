"""
eventmanager Test Suite
=======================

Test Organization
-----------------
- tests/unit/          : Fast unit tests (no external dependencies)

Testing Philosophy
------------------
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
