"""
Tally — Reward & Punishment Point Tracking
===========================================
Records behaviour events for a group of people as signed point values and
derives all-time and weekly standings from them.  Rewards carry positive
values, punishments carry negative ones, and every assignment keeps a
snapshot of the action it was created from so history never shifts.

Package layout::

    tally/
    ├── config.py          # YAML → typed Python config
    ├── errors.py          # ValidationError / NotFoundError / ... taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helpers
    │   ├── models.py      # ORM models (persons, actions, assignments)
    │   └── repository.py  # Data-access collaborator used by the services
    ├── engine/
    │   ├── weeks.py       # Monday-to-Sunday week window arithmetic
    │   ├── rules.py       # Per-kind sign rules, defaults, severity bands
    │   └── scoring.py     # Ranking, averages, summary statistics
    ├── services/
    │   ├── person_service.py      # Person registry
    │   ├── action_service.py      # Reward / punishment registry
    │   ├── assignment_service.py  # Assignment creation + queries
    │   └── score_service.py       # Score aggregation
    └── api/
        ├── main.py        # FastAPI app
        └── routes/        # Thin REST adapters over the services
"""

__version__ = "0.1.0"
