"""Rule-based filing classification and numeric extraction.

Classification is a first-match walk over an ordered keyword table; no
scoring, no model. Extraction pulls a handful of headline numbers out of the
title with regular expressions and converts Korean magnitude suffixes to
absolute amounts.

Usage:
    from filingscore.engines.classifier import classify, extract_numbers

    result = classify("2024년 1분기보고서")
    numbers = extract_numbers(result.category, "매출액 1,200억 영업이익 150억")
"""

from __future__ import annotations

import re

from filingscore.domain import (
    CapitalNumbers,
    Classification,
    ExtractedNumbers,
    FilingCategory,
    OrderContractNumbers,
    PerformanceNumbers,
    ShareholderReturnNumbers,
)


# =============================================================================
# RULE TABLES
# =============================================================================

# Evaluated top to bottom; the first category with a matching keyword wins.
CATEGORY_RULES: tuple[tuple[FilingCategory, tuple[str, ...]], ...] = (
    (
        FilingCategory.PERFORMANCE,
        ("사업보고서", "분기보고서", "반기보고서", "잠정실적", "매출액", "영업이익",
         "실적", "연결재무", "재무제표"),
    ),
    (
        FilingCategory.ORDER_CONTRACT,
        ("수주", "계약", "공급계약", "납품", "공급", "용역계약", "라이선스"),
    ),
    (
        FilingCategory.CAPITAL,
        ("유상증자", "무상증자", "증자", "감자", "전환사채", "CB", "BW", "신주인수권",
         "주식매수선택권", "신주"),
    ),
    (
        FilingCategory.SHAREHOLDER_RETURN,
        ("배당", "현금배당", "자사주", "자기주식", "주식소각", "주주환원"),
    ),
    (
        FilingCategory.GOVERNANCE,
        ("임원", "이사회", "주총", "주주총회", "최대주주", "대표이사", "감사", "사외이사"),
    ),
    (
        FilingCategory.RISK,
        ("소송", "횡령", "배임", "감사의견", "비적정", "상장폐지", "관리종목", "회생",
         "파산", "부도", "거래정지"),
    ),
)

SUBTYPES: tuple[str, ...] = (
    "사업보고서",
    "반기보고서",
    "분기보고서",
    "잠정실적",
    "주요사항보고서",
    "공급계약",
    "수주공시",
    "배당결정",
    "증자결정",
    "자기주식취득",
)

GENERAL_SUBTYPE = "일반공시"

KOREAN_UNITS: dict[str, int] = {
    "조": 1_000_000_000_000,
    "억": 100_000_000,
    "만": 10_000,
}

_BRACKETED = re.compile(r"\[([^\]]+)\]")

_REVENUE = re.compile(r"매출액?\s*[:\s]*([0-9,]+)\s*(조|억)")
_OPERATING_PROFIT = re.compile(r"영업이익\s*[:\s]*([0-9,]+)\s*(조|억)")
_NET_PROFIT = re.compile(r"(?:당기)?순이익\s*[:\s]*([0-9,]+)\s*(조|억)")
_REVENUE_YOY = re.compile(r"전년\s*대비\s*([+-]?\d+\.?\d*)\s*%")
_CONTRACT_AMOUNT = re.compile(r"계약금액?\s*[:\s]*([0-9,]+)\s*(조|억)")
_CONTRACT_RATIO = re.compile(r"매출액?\s*대비\s*([0-9.]+)\s*%")
_DIVIDEND_PER_SHARE = re.compile(r"주당\s*배당금?\s*[:\s]*([0-9,]+)\s*원")
_DIVIDEND_YIELD = re.compile(r"배당수익률?\s*[:\s]*([0-9.]+)\s*%")
_CAPITAL_AMOUNT = re.compile(r"([0-9,]+)\s*(조|억)\s*원?\s*(?:증자|발행)")


# =============================================================================
# CLASSIFICATION
# =============================================================================


def classify_category(title: str) -> FilingCategory:
    """Category of the first rule with a case-sensitive substring match."""
    for category, keywords in CATEGORY_RULES:
        if any(keyword in title for keyword in keywords):
            return category
    return FilingCategory.OTHER


def extract_subtype(title: str) -> str:
    for subtype in SUBTYPES:
        if subtype in title:
            return subtype
    match = _BRACKETED.search(title)
    if match:
        return match.group(1)
    return GENERAL_SUBTYPE


def is_correction(title: str, remark: str | None = None) -> bool:
    """A filing is a correction when flagged in the remark or the title."""
    if remark and "정정" in remark:
        return True
    return "[정정]" in title or "(정정)" in title


def classify(title: str, remark: str | None = None) -> Classification:
    return Classification(
        category=classify_category(title),
        subtype=extract_subtype(title),
        is_correction=is_correction(title, remark),
    )


# =============================================================================
# NUMERIC EXTRACTION
# =============================================================================


def parse_korean_amount(digits: str, unit: str) -> float:
    """Convert "1,200" + "억" to 120000000000."""
    value = int(digits.replace(",", ""))
    return float(value * KOREAN_UNITS.get(unit, 1))


def _amount(pattern: re.Pattern[str], text: str) -> float | None:
    match = pattern.search(text)
    if not match:
        return None
    digits = match.group(1).replace(",", "")
    if not digits:
        return None
    return parse_korean_amount(digits, match.group(2))


def _won(pattern: re.Pattern[str], text: str) -> float | None:
    match = pattern.search(text)
    if not match:
        return None
    digits = match.group(1).replace(",", "")
    return float(digits) if digits else None


def _percent(pattern: re.Pattern[str], text: str) -> float | None:
    match = pattern.search(text)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def extract_numbers(category: FilingCategory, text: str) -> ExtractedNumbers | None:
    """Headline numbers for the category, or None for categories without any.

    Fields that do not match stay None; nothing is ever defaulted to zero.
    """
    if category is FilingCategory.PERFORMANCE:
        return PerformanceNumbers(
            revenue=_amount(_REVENUE, text),
            operating_profit=_amount(_OPERATING_PROFIT, text),
            net_profit=_amount(_NET_PROFIT, text),
            revenue_yoy=_percent(_REVENUE_YOY, text),
        )
    if category is FilingCategory.ORDER_CONTRACT:
        return OrderContractNumbers(
            contract_amount=_amount(_CONTRACT_AMOUNT, text),
            contract_ratio=_percent(_CONTRACT_RATIO, text),
        )
    if category is FilingCategory.SHAREHOLDER_RETURN:
        return ShareholderReturnNumbers(
            dividend_per_share=_won(_DIVIDEND_PER_SHARE, text),
            dividend_yield=_percent(_DIVIDEND_YIELD, text),
        )
    if category is FilingCategory.CAPITAL:
        return CapitalNumbers(capital_amount=_amount(_CAPITAL_AMOUNT, text))
    return None


def sparse_numbers(numbers: ExtractedNumbers | None) -> dict[str, float | int] | None:
    """Drop unset fields; None when nothing was extracted."""
    if numbers is None:
        return None
    data = numbers.model_dump(exclude_none=True)
    return data or None
