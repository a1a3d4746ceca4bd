"""Services used by the deployment pipeline."""

from nekoweb_deploy.services.archiver import create_archive
from nekoweb_deploy.services.nekoweb import AuthMode, NekowebClient
from nekoweb_deploy.services.site_metadata import SiteMetadataClient
from nekoweb_deploy.services.staging import StagingWorkspace
from nekoweb_deploy.services.upload import BigFileSession, UploadSessionClient

__all__ = [
    "AuthMode",
    "BigFileSession",
    "NekowebClient",
    "SiteMetadataClient",
    "StagingWorkspace",
    "UploadSessionClient",
    "create_archive",
]
