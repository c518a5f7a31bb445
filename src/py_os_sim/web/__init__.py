"""JSON web API for the simulation engines.

This package provides a Flask application that lets a browser front end
drive both engines.  It is an **optional** extra — install with::

    pip install py-os-sim[web]

The ``create_app`` factory in ``app.py`` serves three endpoints:

- ``GET /api/algorithms`` — list scheduling and placement algorithms.
- ``POST /api/schedule`` — run a scheduling simulation to completion.
- ``POST /api/memory`` — replay allocate/deallocate operations.
"""
