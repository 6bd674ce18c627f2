import datetime
import logging
from typing import List, Optional, Sequence, Tuple

from troposphere import GetAtt, Ref, Template
from troposphere.cloudfront import (
    CacheBehavior,
    CacheCookiesConfig,
    CacheHeadersConfig,
    CachePolicy,
    CachePolicyConfig,
    CacheQueryStringsConfig,
    DefaultCacheBehavior,
    Function,
    FunctionAssociation,
    ParametersInCacheKeyAndForwardedToOrigin,
)

from . import naming
from .config import ALLOWED_METHODS_ALL, CacheBehaviorSpec, NamingContext
from .origins import AssembledOrigin

logger = logging.getLogger(__name__)

READ_ONLY_METHODS = ["GET", "HEAD", "OPTIONS"]
ALL_METHODS = READ_ONLY_METHODS + ["PUT", "PATCH", "POST", "DELETE"]
CACHED_METHODS = READ_ONLY_METHODS

# AWS managed policies, identical in every account
CACHING_OPTIMIZED_POLICY_ID = "658327ea-f89d-4fab-a63d-7e88639e58f6"
ALL_VIEWER_ORIGIN_REQUEST_POLICY_ID = "216adef6-5c7f-47e4-b989-5492eafa07d3"

# preflight responses differ per requesting origin
CORS_PREFLIGHT_HEADERS = [
    "Origin",
    "Access-Control-Request-Method",
    "Access-Control-Request-Headers",
]

DEFAULT_TTL = 0
MAX_TTL = int(datetime.timedelta(days=365).total_seconds())

DEFAULT_POLICY_ROLE = "CachePolicy"
DEFAULT_BEHAVIOR_POLICY_ROLE = "DefaultCachePolicy"


def allowed_methods(behavior: Optional[CacheBehaviorSpec]) -> List[str]:
    if behavior is not None and behavior.allowed_methods == ALLOWED_METHODS_ALL:
        return list(ALL_METHODS)
    return list(READ_ONLY_METHODS)


def cache_key_headers(behavior: CacheBehaviorSpec) -> List[str]:
    headers = list(behavior.headers)
    if behavior.cache_options_method:
        headers += [h for h in CORS_PREFLIGHT_HEADERS if h not in headers]
    return headers


def dedicated_policy_role(position: int) -> str:
    return f"Origin{position}{DEFAULT_POLICY_ROLE}"


def create_cache_policy(
    title: str, name: str, behavior: Optional[CacheBehaviorSpec] = None
) -> CachePolicy:
    """
    Without a behavior this is the shared policy: cache for as long as the
    origin allows, keyed on the query string only.
    """
    if behavior is not None and behavior.forwards_all_headers:
        # CloudFront refuses any cache key settings once caching is disabled
        return CachePolicy(
            title,
            CachePolicyConfig=CachePolicyConfig(
                Name=name,
                DefaultTTL=0,
                MaxTTL=0,
                MinTTL=0,
                ParametersInCacheKeyAndForwardedToOrigin=ParametersInCacheKeyAndForwardedToOrigin(
                    CookiesConfig=CacheCookiesConfig(CookieBehavior="none"),
                    HeadersConfig=CacheHeadersConfig(HeaderBehavior="none"),
                    QueryStringsConfig=CacheQueryStringsConfig(
                        QueryStringBehavior="none"
                    ),
                    EnableAcceptEncodingBrotli=False,
                    EnableAcceptEncodingGzip=False,
                ),
            ),
        )

    headers = cache_key_headers(behavior) if behavior is not None else []
    return CachePolicy(
        title,
        CachePolicyConfig=CachePolicyConfig(
            Name=name,
            DefaultTTL=DEFAULT_TTL,
            MaxTTL=MAX_TTL,
            MinTTL=0,
            ParametersInCacheKeyAndForwardedToOrigin=ParametersInCacheKeyAndForwardedToOrigin(
                CookiesConfig=CacheCookiesConfig(CookieBehavior="none"),
                HeadersConfig=(
                    CacheHeadersConfig(HeaderBehavior="whitelist", Headers=headers)
                    if headers
                    else CacheHeadersConfig(HeaderBehavior="none")
                ),
                QueryStringsConfig=CacheQueryStringsConfig(QueryStringBehavior="all"),
                EnableAcceptEncodingBrotli=True,
                EnableAcceptEncodingGzip=True,
            ),
        ),
    )


def default_cache_behavior(
    template: Template,
    construct_name: str,
    context: NamingContext,
    storage_origin: AssembledOrigin,
    request_function: Function,
    response_function: Function,
) -> DefaultCacheBehavior:
    """
    Serves the website bucket. Cache key settings declared on the origin that
    customizes the bucket get a policy of their own instead of CachingOptimized.
    """
    behavior = storage_origin.spec.cache_behavior if storage_origin.spec else None
    cache_policy_id = CACHING_OPTIMIZED_POLICY_ID
    if behavior is not None and not behavior.uses_default_policy:
        policy = template.add_resource(
            create_cache_policy(
                naming.logical_id(construct_name, DEFAULT_BEHAVIOR_POLICY_ROLE),
                naming.physical_name(
                    context.stage_prefix,
                    context.region,
                    construct_name,
                    "default-cache-policy",
                    naming.CACHE_POLICY_NAME_MAX_LENGTH,
                ),
                behavior,
            )
        )
        cache_policy_id = Ref(policy)
    default_behavior = DefaultCacheBehavior(
        TargetOriginId=storage_origin.origin_id,
        AllowedMethods=allowed_methods(behavior),
        CachedMethods=list(CACHED_METHODS),
        CachePolicyId=cache_policy_id,
        Compress=True,
        ViewerProtocolPolicy="redirect-to-https",
        FunctionAssociations=[
            FunctionAssociation(
                EventType="viewer-response",
                FunctionARN=GetAtt(response_function, "FunctionARN"),
            ),
            FunctionAssociation(
                EventType="viewer-request",
                FunctionARN=GetAtt(request_function, "FunctionARN"),
            ),
        ],
    )
    if behavior is not None and behavior.forwards_all_headers:
        default_behavior.OriginRequestPolicyId = ALL_VIEWER_ORIGIN_REQUEST_POLICY_ID
    return default_behavior


def path_cache_behaviors(
    template: Template,
    construct_name: str,
    context: NamingContext,
    origins: Sequence[AssembledOrigin],
) -> List[CacheBehavior]:
    """
    One behavior per routed origin declaring a cache behavior, in declaration
    order since CloudFront applies the first matching pattern. Cache policies
    the behaviors need are added to ``template``.
    """
    shared_policy = None
    behaviors = []
    for assembled in origins:
        spec = assembled.spec
        if spec is None or not spec.is_routed or spec.cache_behavior is None:
            continue
        behavior = spec.cache_behavior

        if behavior.uses_default_policy:
            if shared_policy is None:
                shared_policy = template.add_resource(
                    create_cache_policy(
                        naming.logical_id(construct_name, DEFAULT_POLICY_ROLE),
                        naming.physical_name(
                            context.stage_prefix,
                            context.region,
                            construct_name,
                            "cache-policy",
                            naming.CACHE_POLICY_NAME_MAX_LENGTH,
                        ),
                    )
                )
            policy = shared_policy
        else:
            policy = template.add_resource(
                create_cache_policy(
                    naming.logical_id(
                        construct_name, dedicated_policy_role(assembled.position)
                    ),
                    naming.physical_name(
                        context.stage_prefix,
                        context.region,
                        construct_name,
                        f"origin{assembled.position}-cache-policy",
                        naming.CACHE_POLICY_NAME_MAX_LENGTH,
                    ),
                    behavior,
                )
            )
        logger.debug("Cache behavior %s* uses cache policy %s", spec.path_pattern, policy.title)

        cache_behavior = CacheBehavior(
            PathPattern=f"{spec.path_pattern}*",
            TargetOriginId=assembled.origin_id,
            AllowedMethods=allowed_methods(behavior),
            CachedMethods=list(CACHED_METHODS),
            CachePolicyId=Ref(policy),
            Compress=True,
            ViewerProtocolPolicy="allow-all",
        )
        if behavior.forwards_all_headers:
            cache_behavior.OriginRequestPolicyId = ALL_VIEWER_ORIGIN_REQUEST_POLICY_ID
        behaviors.append(cache_behavior)
    return behaviors


def assemble_cache_behaviors(
    template: Template,
    construct_name: str,
    context: NamingContext,
    origins: Sequence[AssembledOrigin],
    request_function: Function,
    response_function: Function,
) -> Tuple[DefaultCacheBehavior, List[CacheBehavior]]:
    return (
        default_cache_behavior(
            template,
            construct_name,
            context,
            origins[0],
            request_function,
            response_function,
        ),
        path_cache_behaviors(template, construct_name, context, origins),
    )
