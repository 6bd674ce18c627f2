import hashlib
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from awacs import s3
from awacs.aws import Allow, PolicyDocument, Principal, Statement
from troposphere import GetAtt, Join, Output, Ref, Template
from troposphere.cloudfront import (
    CloudFrontOriginAccessIdentity,
    CloudFrontOriginAccessIdentityConfig,
    Distribution,
    DistributionConfig,
    Function,
    FunctionConfig,
    ViewerCertificate,
)
from troposphere.s3 import (
    Bucket,
    BucketEncryption,
    BucketPolicy,
    PublicAccessBlockConfiguration,
    ServerSideEncryptionByDefault,
    ServerSideEncryptionRule,
)

from . import edge_function, naming
from .cache_behaviors import assemble_cache_behaviors
from .config import Configuration, NamingContext
from .exceptions import ConfigurationError
from .origins import assemble_origins
from .overrides import PropertyTree, apply_extensions

logger = logging.getLogger(__name__)

CONSTRUCT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
TOKEN_LENGTH = 8

TokenFactory = Callable[[str, NamingContext], str]


def default_token(construct_name: str, context: NamingContext) -> str:
    return hashlib.md5(
        "/".join((context.service, context.stage, construct_name)).encode("utf-8")
    ).hexdigest()[:TOKEN_LENGTH]


@dataclass(frozen=True)
class CompiledConstruct:
    construct_name: str
    token: str
    description: str
    resources: Dict[str, PropertyTree]
    outputs: Dict[str, PropertyTree]
    # resource role (bucket, distribution, ...) -> logical id
    logical_ids: Dict[str, str]
    # output name (BucketName, Domain, ...) -> output logical id
    output_ids: Dict[str, str]

    def resource(self, role: str) -> PropertyTree:
        return self.resources[self.logical_ids[role]]

    def output(self, name: str) -> PropertyTree:
        return self.outputs[self.output_ids[name]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Description": self.description,
            "Resources": self.resources,
            "Outputs": self.outputs,
        }

    def to_json(self, indent=4, sort_keys=True, **kwargs) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=sort_keys, **kwargs)


def create_template(
    construct_name: str,
    configuration: Configuration,
    context: NamingContext,
    token: str,
) -> Tuple[Template, Dict[str, str], Dict[str, str]]:
    template = Template(
        Description=f"Single page app {construct_name} served from S3 through CloudFront."
    )

    bucket = template.add_resource(
        Bucket(
            naming.logical_id(construct_name, "Bucket"),
            BucketEncryption=BucketEncryption(
                ServerSideEncryptionConfiguration=[
                    ServerSideEncryptionRule(
                        ServerSideEncryptionByDefault=ServerSideEncryptionByDefault(
                            # Origin Access Identities can't use KMS
                            SSEAlgorithm="AES256"
                        )
                    )
                ]
            ),
            PublicAccessBlockConfiguration=PublicAccessBlockConfiguration(
                BlockPublicAcls=True,
                BlockPublicPolicy=True,
                IgnorePublicAcls=True,
                RestrictPublicBuckets=True,
            ),
            DeletionPolicy="Delete",
            UpdateReplacePolicy="Delete",
        )
    )

    storage_origin_id = naming.origin_id(construct_name, token, 1)

    origin_access_identity = template.add_resource(
        CloudFrontOriginAccessIdentity(
            naming.logical_id(construct_name, "OriginAccessIdentity"),
            CloudFrontOriginAccessIdentityConfig=CloudFrontOriginAccessIdentityConfig(
                Comment=f"Identity for {storage_origin_id}",
            ),
        )
    )

    bucket_policy = template.add_resource(
        BucketPolicy(
            naming.logical_id(construct_name, "BucketPolicy"),
            Bucket=Ref(bucket),
            PolicyDocument=PolicyDocument(
                Version="2012-10-17",
                Statement=[
                    Statement(
                        Effect=Allow,
                        Principal=Principal(
                            "CanonicalUser",
                            GetAtt(origin_access_identity, "S3CanonicalUserId"),
                        ),
                        Action=[s3.GetObject],
                        Resource=[Join("", [GetAtt(bucket, "Arn"), "/*"])],
                    ),
                ],
            ),
        )
    )

    request_code, response_code = edge_function.synthesize(
        configuration.redirect_to_main_domain,
        configuration.primary_domain,
        allow_iframe=configuration.allow_iframe,
    )
    functions = {}
    for role, suffix, code in (
        ("requestFunction", "request", request_code),
        ("responseFunction", "response", response_code),
    ):
        function_name = naming.physical_name(
            context.stage_prefix, context.region, construct_name, suffix
        )
        functions[role] = template.add_resource(
            Function(
                naming.logical_id(construct_name, suffix.capitalize() + "Function"),
                Name=function_name,
                AutoPublish=True,
                FunctionCode=code,
                FunctionConfig=FunctionConfig(
                    Comment=function_name,
                    Runtime=edge_function.RUNTIME,
                ),
            )
        )

    origins = assemble_origins(
        construct_name, token, configuration.origins, bucket, origin_access_identity
    )
    default_behavior, cache_behaviors = assemble_cache_behaviors(
        template,
        construct_name,
        context,
        origins,
        functions["requestFunction"],
        functions["responseFunction"],
    )

    distribution_config = DistributionConfig(
        Enabled=True,
        Comment=f"{context.stack_name} {construct_name} website CDN",
        DefaultRootObject="index.html",
        HttpVersion="http2",
        IPV6Enabled=True,
        PriceClass="PriceClass_All",
        Origins=[assembled.origin for assembled in origins],
        DefaultCacheBehavior=default_behavior,
    )
    if cache_behaviors:
        distribution_config.CacheBehaviors = cache_behaviors
    if configuration.domains:
        distribution_config.Aliases = list(configuration.domains)
        distribution_config.ViewerCertificate = ViewerCertificate(
            AcmCertificateArn=configuration.certificate,
            SslSupportMethod="sni-only",
            MinimumProtocolVersion="TLSv1.2_2021",
        )

    distribution = template.add_resource(
        Distribution(
            naming.logical_id(construct_name, token),
            DistributionConfig=distribution_config,
            DependsOn=[bucket_policy],
        )
    )

    logical_ids = {
        "bucket": bucket.title,
        "bucketPolicy": bucket_policy.title,
        "originAccessIdentity": origin_access_identity.title,
        "distribution": distribution.title,
        "requestFunction": functions["requestFunction"].title,
        "responseFunction": functions["responseFunction"].title,
    }

    output_ids = {}
    for name, value in (
        ("BucketName", Ref(bucket)),
        (
            "Domain",
            configuration.primary_domain or GetAtt(distribution, "DomainName"),
        ),
        ("CloudFrontCName", GetAtt(distribution, "DomainName")),
        ("DistributionId", Ref(distribution)),
    ):
        output_ids[name] = template.add_output(
            Output(naming.output_id(construct_name, name), Value=value)
        ).title

    return template, logical_ids, output_ids


def compile_construct(
    construct_name: str,
    configuration: Union[Configuration, Mapping[str, Any]],
    context: NamingContext,
    token_factory: Optional[TokenFactory] = None,
) -> CompiledConstruct:
    """
    Compiles one single page app construct into CloudFormation resources and
    outputs. The configuration is validated before anything is generated, and
    the construct's extensions are merged in last.
    """
    if not CONSTRUCT_NAME_PATTERN.match(construct_name or ""):
        raise ConfigurationError(
            f"construct name {construct_name!r} may only contain letters, "
            "digits, hyphens and underscores"
        )
    if not isinstance(configuration, Configuration):
        configuration = Configuration.from_dict(configuration)

    token = (token_factory or default_token)(construct_name, context)
    logger.debug("Compiling %s with token %s", construct_name, token)

    template, logical_ids, output_ids = create_template(
        construct_name, configuration, context, token
    )
    rendered = template.to_dict()

    return CompiledConstruct(
        construct_name=construct_name,
        token=token,
        description=rendered["Description"],
        resources=apply_extensions(
            rendered["Resources"], logical_ids, configuration.extensions
        ),
        outputs=rendered["Outputs"],
        logical_ids=logical_ids,
        output_ids=output_ids,
    )
