"""
Applications Module

The application ledger: students apply to courses and jobs, listing owners
review, students may withdraw while pending.

API Endpoints:
- POST /applications - Submit an application
- PUT /applications/{id}/review - Owner decision
- DELETE /applications/{id} - Withdraw
- GET /applications/mine, /applications/stats, /applications/{id}
- GET /applications/listings/{target_type}/{listing_id}

Invariants:
- One application per (student, listing), backed by a unique constraint
- At most MAX_COURSE_APPLICATIONS_PER_INSTITUTION course applications per
  (student, institution), counting every status
- Accepted applications never exceed listing capacity
- Terminal statuses never change
"""
