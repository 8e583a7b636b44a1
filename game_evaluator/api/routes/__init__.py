"""
API routes.

- rankings: latest/dated rankings, score distribution, health
- runs: evaluation trigger and status
"""
