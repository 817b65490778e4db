"""Peer group catalogue and automatic company mapping.

Industry classification codes are for display only; scoring compares a
company against its peer group. Curated ticker assignments take precedence
over the industry rule table, and manual mappings stored in the database
are never replaced.
"""

from __future__ import annotations

from datetime import UTC, datetime

from filingscore.core.logging import get_logger
from filingscore.domain import PeerGroup, PeerMapping
from filingscore.repositories.base import CompanyRepository, PeerRepository


logger = get_logger("engines.peers")

OTHER_PEER = "OTHER"

PEER_GROUPS: dict[str, PeerGroup] = {
    g.peer_code: g
    for g in (
        PeerGroup(peer_code="SEMI", peer_name="반도체", description="반도체 설계, 제조, 장비"),
        PeerGroup(peer_code="IT_SW", peer_name="IT/소프트웨어", description="소프트웨어, 인터넷, 플랫폼"),
        PeerGroup(peer_code="BIO", peer_name="바이오/헬스케어", description="제약, 바이오, 의료기기"),
        PeerGroup(peer_code="AUTO", peer_name="자동차/부품", description="완성차, 자동차 부품"),
        PeerGroup(peer_code="CHEM", peer_name="화학/에너지", description="화학, 정유, 2차전지"),
        PeerGroup(peer_code="SHIP", peer_name="조선/해운", description="조선, 해운, 중공업"),
        PeerGroup(peer_code="STEEL", peer_name="철강/금속", description="철강, 비철금속"),
        PeerGroup(peer_code="CONST", peer_name="건설/건자재", description="건설, 시멘트, 건자재"),
        PeerGroup(peer_code="BANK", peer_name="은행/보험", description="은행, 보험, 카드"),
        PeerGroup(peer_code="SEC", peer_name="증권/금융", description="증권, 자산운용"),
        PeerGroup(peer_code="RETAIL", peer_name="유통/소매", description="백화점, 마트, 이커머스"),
        PeerGroup(peer_code="FOOD", peer_name="음식료", description="식품, 음료"),
        PeerGroup(peer_code="TELCO", peer_name="통신", description="이동통신, 유선통신"),
        PeerGroup(peer_code="UTIL", peer_name="전력/가스", description="전력, 가스, 유틸리티"),
        PeerGroup(peer_code="MEDIA", peer_name="미디어/엔터", description="방송, 게임, 엔터테인먼트"),
        PeerGroup(peer_code="TRANS", peer_name="운송/물류", description="항공, 육운, 물류"),
        PeerGroup(peer_code="MACH", peer_name="기계/장비", description="산업기계, 전기장비"),
        PeerGroup(peer_code=OTHER_PEER, peer_name="기타", description="분류 미정"),
    )
}

# KRX industry code → peer code
INDUSTRY_TO_PEER_RULES: dict[str, str] = {
    "G25": "SEMI",    # 반도체
    "G26": "SEMI",    # 전자부품
    "G27": "IT_SW",   # 정보기기
    "G28": "IT_SW",   # 소프트웨어
    "G29": "IT_SW",   # 인터넷
    "G31": "BIO",     # 제약
    "G32": "BIO",     # 바이오
    "G35": "AUTO",    # 자동차
    "G36": "AUTO",    # 자동차부품
    "G41": "CHEM",    # 화학
    "G42": "CHEM",    # 정유
    "G45": "STEEL",
    "G51": "CONST",
    "G61": "BANK",    # 은행
    "G62": "SEC",
    "G63": "BANK",    # 보험
    "G71": "RETAIL",
    "G72": "FOOD",
    "G81": "TELCO",
    "G82": "MEDIA",
}

# Curated assignments for large caps whose industry code is often missing
STOCK_PEER_MAPPING: dict[str, str] = {
    "005930": "SEMI",    # 삼성전자
    "000660": "SEMI",    # SK하이닉스
    "035720": "IT_SW",   # 카카오
    "035420": "IT_SW",   # NAVER
    "263750": "IT_SW",   # 펄어비스
    "112040": "IT_SW",   # 위메이드
    "068270": "BIO",     # 셀트리온
    "207940": "BIO",     # 삼성바이오로직스
    "091990": "BIO",     # 셀트리온헬스케어
    "326030": "BIO",     # SK바이오팜
    "005380": "AUTO",    # 현대차
    "000270": "AUTO",    # 기아
    "012330": "AUTO",    # 현대모비스
    "051910": "CHEM",    # LG화학
    "096770": "CHEM",    # SK이노베이션
    "006400": "CHEM",    # 삼성SDI
    "373220": "CHEM",    # LG에너지솔루션
    "009540": "SHIP",    # 한국조선해양
    "010140": "SHIP",    # 삼성중공업
    "042660": "SHIP",    # 대우조선해양
    "011200": "SHIP",    # HMM
    "005490": "STEEL",   # POSCO홀딩스
    "000720": "CONST",   # 현대건설
    "028260": "CONST",   # 삼성물산
    "105560": "BANK",    # KB금융
    "055550": "BANK",    # 신한지주
    "086790": "BANK",    # 하나금융지주
    "316140": "BANK",    # 우리금융지주
    "033780": "SEC",     # KT&G
    "032830": "SEC",     # 삼성생명
    "004990": "RETAIL",  # 롯데지주
    "139480": "RETAIL",  # 이마트
    "097950": "FOOD",    # CJ제일제당
    "271560": "FOOD",    # 오리온
    "017670": "TELCO",   # SK텔레콤
    "030200": "TELCO",   # KT
    "032640": "TELCO",   # LG유플러스
    "015760": "UTIL",    # 한국전력
    "352820": "MEDIA",   # 하이브
    "041510": "MEDIA",   # SM
    "035900": "MEDIA",   # JYP Ent.
    "122870": "MEDIA",   # YG Ent.
}


def map_industry_to_peer(industry_code: str | None) -> str:
    if not industry_code:
        return OTHER_PEER
    return INDUSTRY_TO_PEER_RULES.get(industry_code.strip().upper(), OTHER_PEER)


def resolve_peer(ticker: str | None, industry_code: str | None) -> str:
    """Peer code for a company: curated ticker first, then industry rule."""
    if ticker and ticker in STOCK_PEER_MAPPING:
        return STOCK_PEER_MAPPING[ticker]
    return map_industry_to_peer(industry_code)


def peer_group_info(peer_code: str) -> PeerGroup:
    return PEER_GROUPS.get(peer_code, PEER_GROUPS[OTHER_PEER])


async def ensure_peer_mappings(
    companies: CompanyRepository,
    peers: PeerRepository,
) -> int:
    """Map every active, listed company that has no mapping yet.

    Existing mappings, manual or automatic, are left as they are.

    Returns:
        Number of mappings inserted
    """
    await peers.upsert_groups(list(PEER_GROUPS.values()))

    existing = await peers.get_mappings()
    now = datetime.now(UTC)
    new_mappings = [
        PeerMapping(
            company_id=company.company_id,
            peer_code=resolve_peer(company.ticker, company.industry_code),
            is_manual=False,
            mapped_at=now,
        )
        for company in await companies.list_active_with_ticker()
        if company.company_id not in existing
    ]
    if not new_mappings:
        return 0

    inserted = await peers.insert_auto_mappings(new_mappings)
    logger.info(f"Auto-mapped {inserted} companies to peer groups")
    return inserted
