"""
Buildman REST API.

Provides DRF serializers for:
- Raw order input (validated before normalization)
- Procurement tracking updates
- ProductionTask (output)
"""
