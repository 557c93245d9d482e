from .provider_results import (
    BookResult,
    ChannelResult,
    FeedInfo,
    KnowledgeGraphEntity,
    NewsArticle,
    PodcastResult,
    ProbeResult,
    SocialLinkHints,
    VideoResult,
)
from .research_result import BookClaim, ContentClaim, PossibleLinks, ResearchResult, RewriteResult
from .profiles import (
    LINK_KINDS,
    Book,
    CandidateProfile,
    EnrichedProfile,
    HandleLink,
    PipelineAudit,
    PodcastContent,
    PodcastLink,
    SocialLinks,
    VerificationResults,
    VerifiedApiData,
    VerifiedLinks,
    VerifiedProfile,
    WebsiteLink,
    YouTubeContent,
    YouTubeLink,
)
from .records import FieldChange, ProfileFlag, ProfileVersion, RefreshSchedule, SaveResult
from .updates import WATCHED_FIELDS, ProfileField, ProfileUpdate, get_field, is_blank

__all__ = [
    "BookResult",
    "ChannelResult",
    "FeedInfo",
    "KnowledgeGraphEntity",
    "NewsArticle",
    "PodcastResult",
    "ProbeResult",
    "SocialLinkHints",
    "VideoResult",
    "BookClaim",
    "ContentClaim",
    "PossibleLinks",
    "ResearchResult",
    "RewriteResult",
    "LINK_KINDS",
    "Book",
    "CandidateProfile",
    "EnrichedProfile",
    "HandleLink",
    "PipelineAudit",
    "PodcastContent",
    "PodcastLink",
    "SocialLinks",
    "VerificationResults",
    "VerifiedApiData",
    "VerifiedLinks",
    "VerifiedProfile",
    "WebsiteLink",
    "YouTubeContent",
    "YouTubeLink",
    "FieldChange",
    "ProfileFlag",
    "ProfileVersion",
    "RefreshSchedule",
    "SaveResult",
    "WATCHED_FIELDS",
    "ProfileField",
    "ProfileUpdate",
    "get_field",
    "is_blank",
]
