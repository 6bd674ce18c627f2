import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from troposphere import GetAtt, Join, Ref
from troposphere.cloudfront import (
    CloudFrontOriginAccessIdentity,
    CustomOriginConfig,
    Origin,
    S3OriginConfig,
)
from troposphere.s3 import Bucket

from . import naming
from .config import OriginSpec

logger = logging.getLogger(__name__)

STORAGE_ORIGIN_POSITION = 1

# virtual-hosted S3 endpoints: bucket.s3.amazonaws.com, bucket.s3.<region>.amazonaws.com
# and the legacy bucket.s3-<region>.amazonaws.com
S3_DOMAIN_PATTERN = re.compile(r"\.s3(?:[.-][a-z0-9-]+)?\.amazonaws\.com$")


@dataclass(frozen=True)
class AssembledOrigin:
    origin_id: str
    position: int
    origin: Origin
    spec: Optional[OriginSpec] = None


def is_storage_domain(domain: str) -> bool:
    return bool(S3_DOMAIN_PATTERN.search(domain.lower()))


def origin_access_identity_path(origin_access_identity: CloudFrontOriginAccessIdentity):
    return Join(
        "", ["origin-access-identity/cloudfront/", Ref(origin_access_identity)]
    )


def storage_origin(
    origin_id: str,
    bucket: Bucket,
    origin_access_identity: CloudFrontOriginAccessIdentity,
    default_spec: Optional[OriginSpec] = None,
) -> Origin:
    origin = Origin(
        Id=origin_id,
        DomainName=GetAtt(bucket, "RegionalDomainName"),
        S3OriginConfig=S3OriginConfig(
            OriginAccessIdentity=origin_access_identity_path(origin_access_identity)
        ),
    )
    if default_spec is not None and default_spec.path:
        origin.OriginPath = default_spec.path
    return origin


def routed_origin(origin_id: str, spec: OriginSpec) -> Origin:
    origin = Origin(Id=origin_id, DomainName=spec.domain)
    if is_storage_domain(spec.domain):
        # a bucket outside this construct, readable without an identity
        origin.S3OriginConfig = S3OriginConfig(OriginAccessIdentity="")
    else:
        origin.CustomOriginConfig = CustomOriginConfig(
            OriginProtocolPolicy="https-only",
            OriginSSLProtocols=["TLSv1.2"],
        )
    if spec.path:
        origin.OriginPath = spec.path
    return origin


def assemble_origins(
    construct_name: str,
    token: str,
    origins: Sequence[OriginSpec],
    bucket: Bucket,
    origin_access_identity: CloudFrontOriginAccessIdentity,
) -> List[AssembledOrigin]:
    """
    Returns the distribution's origins in order. The construct's own bucket is
    always first; origins without a path pattern only customize it.
    """
    default_spec = next((spec for spec in origins if not spec.is_routed), None)
    storage_id = naming.origin_id(construct_name, token, STORAGE_ORIGIN_POSITION)
    assembled = [
        AssembledOrigin(
            origin_id=storage_id,
            position=STORAGE_ORIGIN_POSITION,
            origin=storage_origin(storage_id, bucket, origin_access_identity, default_spec),
            spec=default_spec,
        )
    ]
    for spec in origins:
        if not spec.is_routed:
            continue
        position = len(assembled) + 1
        routed_id = naming.origin_id(construct_name, token, position)
        logger.debug("Routing %s to origin %s (%s)", spec.path_pattern, routed_id, spec.domain)
        assembled.append(
            AssembledOrigin(
                origin_id=routed_id,
                position=position,
                origin=routed_origin(routed_id, spec),
                spec=spec,
            )
        )
    return assembled
