"""
Admissions Module

Admission offers issued by institutes after a course application is
accepted, and the student's one-time response.

API Endpoints:
- POST /admissions - Issue offers (best-effort batch)
- POST /admissions/respond - Accept or decline
- GET /admissions/mine, /admissions/issued
"""
