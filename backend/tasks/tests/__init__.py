# tasks/tests/__init__.py
"""
Task App Test Suite
===================

This package contains unit and integration tests for the tasks application.

Modules:
--------
- test_engine: Unit tests for scoring, ranking and due-date resolution
- test_orchestration: Intent recognition pipeline (local, cache, remote, coordinator)
- test_storage: ORM-backed task storage and the Celery rescoring jobs
- test_services: Voice assistant command handling
- test_api: REST endpoints

Running Tests:
--------------
    # Run all task tests (from backend/)
    python manage.py test tasks

    # Or through pytest-django (from the repository root)
    pytest

    # Run specific test module
    python manage.py test tasks.tests.test_engine
    python manage.py test tasks.tests.test_orchestration
"""
