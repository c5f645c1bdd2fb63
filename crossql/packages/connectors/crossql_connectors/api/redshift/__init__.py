from .config import RedshiftDataConnectorConfig
from .connector import RedshiftDataConnector, create_redshift_data_client, redshift_client_scope

__all__ = [
    "RedshiftDataConnectorConfig",
    "RedshiftDataConnector",
    "create_redshift_data_client",
    "redshift_client_scope",
]
