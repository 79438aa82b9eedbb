"""The ``out`` pipeline.

- version: requested version, range gate, archive inspection
- repos: dependency repository registration
- signing: ephemeral GPG keyring and key ID discovery
- packager: ``helm package`` and archive location
- upload: dialect-shaped upload and save confirmation
- verify: metadata round trip after upload
- service: stage sequencing
"""

from __future__ import annotations

from cmr.services.publish.service import PublishService

__all__ = ["PublishService"]
