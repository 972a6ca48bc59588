"""Metadata-API side of the pipeline: credentials, client, discovery."""

from linkguard.youtube.client import QuotaManagedAPIClient
from linkguard.youtube.credentials import Credential, CredentialPool
from linkguard.youtube.discovery import ChannelVideoDiscovery
from linkguard.youtube.models import VideoDetails, VideoRef
from linkguard.youtube.urls import extract_video_id, parse_channel_identifier

__all__ = [
    "QuotaManagedAPIClient",
    "Credential",
    "CredentialPool",
    "ChannelVideoDiscovery",
    "VideoDetails",
    "VideoRef",
    "extract_video_id",
    "parse_channel_identifier",
]
