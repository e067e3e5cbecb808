"""
Medical records module for the telehealth system.

This module provides encrypted storage of patient documents including:
- Symmetric encryption of uploaded files with per-file IVs
- Version history with transactional update and rollback
- Access control based on the patient/doctor relationship
"""
