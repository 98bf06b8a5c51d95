"""
Approval-tier routing for campaign messages.

Message content is checked against an ordered rule set. Each rule is a
dict with a `pattern` (case-insensitive substring) and either a `tier`,
a `flag`, or both. The highest matching tier wins; flags are collected
regardless of tier.
"""

import re

RED = 'RED'
YELLOW = 'YELLOW'
GREEN = 'GREEN'

# Higher rank wins
TIER_RANK = {GREEN: 0, YELLOW: 1, RED: 2}

TIER_RISK_FACTORS = {
    RED: 'Contains sensitive political content',
    YELLOW: 'Contains fundraising or political messaging',
}

COMPLIANCE_FLAG = 'Requires FEC compliance review'

HIGH_RISK_KEYWORDS = [
    'crisis', 'scandal', 'opponent', 'attack', 'lawsuit',
    'investigation', 'controversial', 'allegation',
]

MEDIUM_RISK_KEYWORDS = [
    'donate', 'donation', 'contribution', 'fundraising', 'money',
    'poll', 'survey', 'endorsement', 'debate',
]

COMPLIANCE_KEYWORDS = ['donate', 'donation', 'contribution', 'fundraising']

DEFAULT_RULES = (
    [{'pattern': k, 'tier': RED} for k in HIGH_RISK_KEYWORDS]
    + [{'pattern': k, 'tier': YELLOW} for k in MEDIUM_RISK_KEYWORDS]
    + [{'pattern': k, 'flag': COMPLIANCE_FLAG} for k in COMPLIANCE_KEYWORDS]
)

TAG_RE = re.compile(r'<[^>]+>')


def strip_html(content):
    return TAG_RE.sub(' ', content)


def classify_content(content, rules=None):
    """
    Assign an approval tier to message content.

    Returns {'tier': ..., 'analysis': {...}}. Raises TypeError for
    non-string content.
    """
    if not isinstance(content, str):
        raise TypeError(f"content must be a string, got {type(content).__name__}")
    if rules is None:
        rules = DEFAULT_RULES

    content_lower = content.lower()
    tier = GREEN
    flags = []
    matched = []

    for rule in rules:
        if rule['pattern'].lower() not in content_lower:
            continue
        matched.append(rule['pattern'])
        rule_tier = rule.get('tier')
        if rule_tier and TIER_RANK[rule_tier] > TIER_RANK[tier]:
            tier = rule_tier
        flag = rule.get('flag')
        if flag and flag not in flags:
            flags.append(flag)

    risk_factors = []
    if tier in TIER_RISK_FACTORS:
        risk_factors.append(TIER_RISK_FACTORS[tier])
    risk_factors.extend(flags)

    return {
        'tier': tier,
        'analysis': {
            'riskFactors': risk_factors,
            'matchedKeywords': matched,
            'requiresComplianceReview': COMPLIANCE_FLAG in flags,
            'wordCount': len(strip_html(content).split()),
            'hasLinks': 'http' in content_lower,
            'sentiment': 'neutral',  # placeholder until sentiment scoring exists
            'confidence': 0.85,
        },
    }
