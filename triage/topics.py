"""
Topic and language vocabulary for the elder-care assistant.

One table maps every topic to its keywords per supported language, so adding
a topic or a language is a single edit that ``validate_keyword_table`` checks.
"""

import re
from enum import Enum
from typing import Dict, List, Optional


class Topic(Enum):
    """Closed set of conversation topics."""
    GENERAL = "general"          # Default catch-all
    ALZHEIMER = "alzheimer"      # Memory loss, dementia care
    FALL = "fall"                # Fall risk and prevention
    SLEEP = "sleep"
    DIET = "diet"
    NIGHT_CARE = "night_care"
    POST_OP = "post_op"          # Post-operative recovery
    DIABETES = "diabetes"
    MOOD = "mood"
    MEDICATION = "medication"
    EMERGENCY = "emergency"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Topic":
        """Map a raw topic string to a Topic, falling back to GENERAL."""
        if isinstance(value, Topic):
            return value
        if not value:
            return cls.GENERAL
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GENERAL


class Language(Enum):
    """Supported conversation languages."""
    TH = "th"
    EN = "en"

    @classmethod
    def parse(cls, value: Optional[str], default: "Language" = None) -> "Language":
        """Map a raw language code to a Language, falling back to ``default`` (Thai)."""
        if isinstance(value, Language):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default or cls.TH


DEFAULT_TOPIC = Topic.GENERAL
DEFAULT_LANGUAGE = Language.TH

_THAI_CHARS = re.compile(r"[\u0E00-\u0E7F]")


# The GENERAL entry is generic advice phrasing. It does not compete in
# scoring; the classifier uses it for the advice pre-check.
TOPIC_KEYWORDS: Dict[Topic, Dict[Language, List[str]]] = {
    Topic.GENERAL: {
        Language.TH: ["ขอคำแนะนำ", "แนะนำหน่อย", "ช่วยแนะนำ", "ควรทำอย่างไร", "ทำอย่างไรดี", "ช่วยบอกหน่อย"],
        Language.EN: ["please advise", "any advice", "need advice", "what should i do", "can you suggest", "any tips"],
    },
    Topic.ALZHEIMER: {
        Language.TH: ["อัลไซเมอร์", "ความจำ", "ลืม", "สับสน", "จำไม่ได้", "หลงลืม", "สมองเสื่อม"],
        Language.EN: ["alzheimer", "memory", "forget", "confusion", "dementia", "cognitive"],
    },
    Topic.FALL: {
        Language.TH: ["ล้ม", "หกล้ม", "ลื่น", "ขาอ่อน", "เซ", "ไม่มั่นคง", "ทรงตัว"],
        Language.EN: ["fall", "slip", "balance", "walking", "unsteady", "dizzy", "weak legs"],
    },
    Topic.SLEEP: {
        Language.TH: ["นอน", "หลับ", "นอนไม่หลับ", "ฝันร้าย", "กรน", "นอนกลางวัน"],
        Language.EN: ["sleep", "insomnia", "wake up", "nightmare", "snoring", "nap"],
    },
    Topic.DIET: {
        Language.TH: ["อาหาร", "กินข้าว", "หิว", "อิ่ม", "ลดน้ำหนัก", "โภชนาการ", "วิตามิน"],
        Language.EN: ["food", "eating", "drink", "nutrition", "diet", "vitamin", "meal", "appetite"],
    },
    Topic.NIGHT_CARE: {
        Language.TH: ["กลางคืน", "ดึก", "ตื่นกลางคืน", "เข้าห้องน้ำ", "กลัวมืด", "นอนคนเดียว"],
        Language.EN: ["night", "midnight", "bathroom", "dark", "alone at night", "evening care"],
    },
    Topic.POST_OP: {
        Language.TH: ["หลังผ่าตัด", "แผล", "ฟื้นตัว", "บาดแผล", "พักฟื้น", "ผ่าตัด"],
        Language.EN: ["surgery", "wound", "recovery", "post-op", "healing", "operation"],
    },
    Topic.DIABETES: {
        Language.TH: ["เบาหวาน", "น้ำตาลในเลือด", "อินซูลิน", "แผลไม่หาย", "ระดับน้ำตาล"],
        Language.EN: ["diabetes", "blood sugar", "insulin", "diabetic", "glucose"],
    },
    Topic.MOOD: {
        Language.TH: ["เศร้า", "เหงา", "โกรธ", "หงุดหงิด", "อารมณ์", "ร้องไห้", "เครียด"],
        Language.EN: ["sad", "lonely", "angry", "mood", "depression", "emotional", "stress"],
    },
    Topic.MEDICATION: {
        Language.TH: ["ยา", "ลืมกินยา", "ผลข้างเคียง", "แพ้ยา", "ขนาดยา"],
        Language.EN: ["medication", "medicine", "pills", "dosage", "side effects", "allergic"],
    },
    Topic.EMERGENCY: {
        Language.TH: ["ฉุกเฉิน", "หมดสติ", "หายใจไม่ออก", "เจ็บหน้าอก", "ชัก", "เลือดออก", "1669"],
        Language.EN: ["emergency", "unconscious", "chest pain", "bleeding", "seizure", "breathing"],
    },
}

TOPIC_DESCRIPTIONS: Dict[Topic, str] = {
    Topic.GENERAL: "General elder-care question",
    Topic.ALZHEIMER: "Memory loss, Alzheimer's or dementia care",
    Topic.FALL: "Fall risk, balance and fall prevention",
    Topic.SLEEP: "Sleep problems and rest",
    Topic.DIET: "Diet, nutrition and appetite",
    Topic.NIGHT_CARE: "Night-time supervision and care",
    Topic.POST_OP: "Recovery after surgery",
    Topic.DIABETES: "Diabetes and blood-sugar management",
    Topic.MOOD: "Mood, stress and emotional wellbeing",
    Topic.MEDICATION: "Medication management and side effects",
    Topic.EMERGENCY: "Urgent symptoms needing immediate help",
}


def detect_language(text: Optional[str]) -> Language:
    """Thai if the text contains any Thai character, English otherwise."""
    if text and _THAI_CHARS.search(text):
        return Language.TH
    return Language.EN


def keywords_for(topic: Topic) -> List[str]:
    """All keywords of a topic across languages, lower-cased."""
    entry = TOPIC_KEYWORDS.get(topic, {})
    return [kw.lower() for language in Language for kw in entry.get(language, [])]


def get_topic_description(topic: Topic) -> str:
    """Get human-readable description of a topic."""
    return TOPIC_DESCRIPTIONS.get(topic, "Unknown topic")


def validate_keyword_table(table: Dict[Topic, Dict[Language, List[str]]] = None) -> None:
    """
    Check that every topic has keywords for every supported language.

    Raises:
        ValueError: listing each missing (topic, language) pair
    """
    table = TOPIC_KEYWORDS if table is None else table
    missing = [
        f"{topic.value}/{language.value}"
        for topic in Topic
        for language in Language
        if not table.get(topic, {}).get(language)
    ]
    if missing:
        raise ValueError(f"Keyword table incomplete: {', '.join(missing)}")
