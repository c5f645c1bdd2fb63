from typing import Optional

from ..config import AsyncStatementConnectorConfig


class RedshiftDataConnectorConfig(AsyncStatementConnectorConfig):
    """
    Target for the Redshift Data API. Either a serverless workgroup or a
    provisioned cluster identifier is required; credentials come from the
    default AWS chain unless explicit keys are given.
    """

    database: str
    workgroup_name: Optional[str] = None
    cluster_identifier: Optional[str] = None
    db_user: Optional[str] = None
    secret_arn: Optional[str] = None
    region: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
