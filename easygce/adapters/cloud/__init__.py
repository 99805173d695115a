"""Cloud adapters — the gcloud-backed control plane."""

from easygce.adapters.cloud.gcloud import GcloudControlPlane

__all__ = ["GcloudControlPlane"]
