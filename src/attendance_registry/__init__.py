"""Attendance Registry package.

This package is organized by feature modules (attendance, access, audit, ...)
with a thin Flask controller layer and service/repository layers behind it.
"""
