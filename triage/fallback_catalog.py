"""
Fallback Responses for the Jirung elder-care assistant.

Pre-written replies served when the generator is unavailable. This is the
last line of defence in the chat path, so every lookup returns a non-empty
string.

Placeholders in the texts: {brand}, {channel}, {emergency_number}, {hotline_number}.
"""

import logging
import random
import threading
from typing import Dict, List, Optional, Union

from .topics import DEFAULT_LANGUAGE, DEFAULT_TOPIC, Language, Topic

logger = logging.getLogger(__name__)


FALLBACK_RESPONSES: Dict[Topic, Dict[Language, List[str]]] = {
    Topic.GENERAL: {
        Language.TH: [
            "ขออภัยค่ะ ระบบมีปัญหาชั่วคราว แต่ดิฉันยังพร้อมช่วยเหลือคุณค่ะ\n\n"
            "สำหรับคำถามทั่วไปเกี่ยวกับการดูแลผู้สูงอายุ แนะนำให้:\n"
            "• สังเกตอาการและพฤติกรรมเปลี่ยนแปลง\n• รักษาสภาพแวดล้อมที่ปลอดภัย\n• ให้กำลังใจและความอบอุ่น\n\n"
            "หากต้องการคำแนะนำเฉพาะเจาะจง กรุณาคุยกับทีม {brand} ทาง {channel} ค่ะ",
            "แม้ระบบจะมีปัญหา แต่ดิฉันขอแบ่งปันคำแนะนำพื้นฐานค่ะ\n\n"
            "การดูแลผู้สูงอายุที่ดี:\n• ให้ความรักและความเข้าใจ\n• ดูแลสุขภาพกายและใจ\n"
            "• สร้างกิจกรรมที่เหมาะสม\n• รักษาความปลอดภัย\n\n"
            "สำหรับคำแนะนำเฉพาะ กรุณาติดต่อทีม {brand} ทาง {channel} ค่ะ",
        ],
        Language.EN: [
            "I apologize for the temporary system issue, but I'm still here to help.\n\n"
            "For general elder care questions, I recommend:\n"
            "• Monitor changes in behavior and symptoms\n• Maintain a safe environment\n"
            "• Provide emotional support and warmth\n\n"
            "For specific guidance, please contact the {brand} team via {channel}.",
            "Despite the system issue, let me share some basic guidance.\n\n"
            "Good elder care includes:\n• Love and understanding\n• Physical and mental health care\n"
            "• Appropriate activities\n• Safety maintenance\n\n"
            "For specific advice, please contact the {brand} team via {channel}.",
        ],
    },
    Topic.ALZHEIMER: {
        Language.TH: [
            "สำหรับการดูแลผู้ป่วยอัลไซเมอร์:\n\n• สร้างกิจวัตรประจำวันที่ชัดเจน\n• ใช้คำพูดง่าย ๆ และชัดเจน\n"
            "• รักษาสภาพแวดล้อมที่คุ้นเคย\n• อดทนและให้กำลังใจ\n\n"
            "⚠️ หากมีอาการรุนแรง กรุณาติดต่อแพทย์\nสำหรับคำแนะนำเฉพาะ คุยกับทีม {brand} ทาง {channel} ค่ะ",
        ],
        Language.EN: [
            "For Alzheimer's care:\n\n• Create clear daily routines\n• Use simple, clear language\n"
            "• Maintain a familiar environment\n• Be patient and encouraging\n\n"
            "⚠️ Contact a doctor for severe symptoms\nFor specific advice, contact the {brand} team via {channel}.",
        ],
    },
    Topic.FALL: {
        Language.TH: [
            "การป้องกันการล้มของผู้สูงอายุ:\n\n• ติดราวจับในห้องน้ำและบันได\n• เก็บของกีดขวางออกจากทางเดิน\n"
            "• ใช้รองเท้าที่มีพื้นกันลื่น\n• ติดไฟส่องสว่างเพียงพอ\n\n"
            "🚨 หากล้มแล้ว: ตรวจสอบการบาดเจ็บ หากมีอาการผิดปกติ โทร {emergency_number}\n"
            "คุยกับทีม {brand} ทาง {channel} สำหรับคำแนะนำเพิ่มเติมค่ะ",
        ],
        Language.EN: [
            "Fall prevention for elderly:\n\n• Install grab bars in bathroom and stairs\n• Remove obstacles from walkways\n"
            "• Use non-slip shoes\n• Ensure adequate lighting\n\n"
            "🚨 If fallen: check for injuries, call {emergency_number} if symptoms are abnormal\n"
            "Contact the {brand} team via {channel} for additional guidance.",
        ],
    },
    Topic.SLEEP: {
        Language.TH: [
            "การปรับปรุงการนอนหลับของผู้สูงอายุ:\n\n• ตื่นนอนเวลาเดิมทุกวัน\n• หลีกเลี่ยงคาเฟอีนหลัง 14:00\n"
            "• ออกกำลังกายเบา ๆ ในตอนเช้า\n• สร้างบรรยากาศห้องนอนที่เงียบและมืด\n\n"
            "💤 หากนอนไม่หลับเรื้อรัง ควรปรึกษาแพทย์\nคุยกับทีม {brand} ทาง {channel} สำหรับคำแนะนำเฉพาะค่ะ",
            "เคล็ดลับการนอนหลับสำหรับผู้สูงอายุ:\n\n• จำกัดการงีบกลางวันไม่เกิน 30 นาที\n• งดดื่มน้ำมากก่อนนอน\n"
            "• ทำกิจกรรมผ่อนคลายก่อนเข้านอน\n\n"
            "💤 หากนอนไม่หลับต่อเนื่องหลายสัปดาห์ ควรปรึกษาแพทย์\nคุยกับทีม {brand} ทาง {channel} ได้เลยค่ะ",
        ],
        Language.EN: [
            "Improving elderly sleep:\n\n• Wake up at the same time daily\n• Avoid caffeine after 2 PM\n"
            "• Light exercise in the morning\n• Create a quiet, dark bedroom environment\n\n"
            "💤 Consult a doctor for chronic insomnia\nContact the {brand} team via {channel} for specific advice.",
            "Sleep tips for older adults:\n\n• Keep daytime naps under 30 minutes\n• Limit fluids before bed\n"
            "• Wind down with a calm routine\n\n"
            "💤 See a doctor if sleeplessness lasts for weeks\nThe {brand} team is available via {channel}.",
        ],
    },
    Topic.DIET: {
        Language.TH: [
            "คำแนะนำอาหารสำหรับผู้สูงอายุ:\n\n• ดื่มน้ำเพียงพอ 6-8 แก้วต่อวัน\n• รับประทานผลไม้และผักหลากสี\n"
            "• เลือกโปรตีนคุณภาพดี เช่น ปลา ไข่\n• หลีกเลี่ยงอาหารเค็ม หวาน มัน จัด\n\n"
            "🍎 หากมีโรคประจำตัว ควรปรึกษาแพทย์หรือนักโภชนาการ\nคุยกับทีม {brand} ทาง {channel} สำหรับแผนอาหารเฉพาะค่ะ",
        ],
        Language.EN: [
            "Nutrition advice for elderly:\n\n• Drink adequate water, 6-8 glasses daily\n• Eat colorful fruits and vegetables\n"
            "• Choose quality protein like fish and eggs\n• Avoid excessive salt, sugar and fat\n\n"
            "🍎 Consult a doctor or nutritionist for chronic conditions\n"
            "Contact the {brand} team via {channel} for specific meal plans.",
        ],
    },
    Topic.NIGHT_CARE: {
        Language.TH: [
            "การดูแลผู้สูงอายุในเวลากลางคืน:\n\n• ติดไฟกลางคืนในทางเดินและห้องน้ำ\n• เตรียมอุปกรณ์ฉุกเฉินไว้ใกล้เตียง\n"
            "• ตรวจเช็คทุก 2-3 ชั่วโมงหากจำเป็น\n• รักษาอุณหภูมิห้องให้เหมาะสม\n\n"
            "🌙 หากมีอาการผิดปกติกลางคืน โทร {emergency_number}\nคุยกับทีม {brand} ทาง {channel} สำหรับแผนดูแลกลางคืนค่ะ",
        ],
        Language.EN: [
            "Nighttime elderly care:\n\n• Install night lights in hallways and bathroom\n• Keep emergency supplies near the bed\n"
            "• Check every 2-3 hours if necessary\n• Maintain a comfortable room temperature\n\n"
            "🌙 Call {emergency_number} for abnormal nighttime symptoms\n"
            "Contact the {brand} team via {channel} for nighttime care plans.",
        ],
    },
    Topic.POST_OP: {
        Language.TH: [
            "การดูแลหลังผ่าตัด (คำแนะนำทั่วไป):\n\n• ทำความสะอาดแผลตามคำแนะนำแพทย์\n• รับประทานยาตรงเวลา\n"
            "• พักผ่อนเพียงพอ หลีกเลี่ยงกิจกรรมหนัก\n• สังเกตอาการแผลติดเชื้อ\n\n"
            "⚠️ ต้องปฏิบัติตามคำแนะนำแพทย์เป็นหลัก\nคุยกับทีม {brand} ทาง {channel} สำหรับการดูแลเฉพาะค่ะ",
        ],
        Language.EN: [
            "Post-operative care (general advice):\n\n• Clean the wound as your doctor instructed\n• Take medication on time\n"
            "• Get adequate rest, avoid heavy activities\n• Watch for signs of infection\n\n"
            "⚠️ Follow your doctor's instructions first\nContact the {brand} team via {channel} for specific care.",
        ],
    },
    Topic.DIABETES: {
        Language.TH: [
            "การดูแลผู้สูงอายุเบาหวาน (คำแนะนำทั่วไป):\n\n• ตรวจน้ำตาลตามที่แพทย์กำหนด\n• รับประทานอาหารตรงเวลา\n"
            "• ออกกำลังกายเบา ๆ สม่ำเสมอ\n• ดูแลเท้าให้สะอาดและแห้ง\n\n"
            "⚠️ ต้องปฏิบัติตามคำแนะนำแพทย์เป็นหลัก\nคุยกับทีม {brand} ทาง {channel} สำหรับแผนดูแลเฉพาะค่ะ",
        ],
        Language.EN: [
            "Elderly diabetes care (general advice):\n\n• Check blood sugar as prescribed\n• Eat meals on time\n"
            "• Regular light exercise\n• Keep feet clean and dry\n\n"
            "⚠️ Follow your doctor's instructions first\nContact the {brand} team via {channel} for specific care plans.",
        ],
    },
    Topic.MOOD: {
        Language.TH: [
            "การดูแลสุขภาพจิตผู้สูงอายุ:\n\n• ให้เวลาและความสนใจ\n• สนทนาและฟังอย่างตั้งใจ\n"
            "• สร้างกิจกรรมที่สนุกสนาน\n• รักษาการติดต่อกับเพื่อนฝูง\n\n"
            "💚 หากมีอาการซึมเศร้าหรือวิตกกังวลมาก ควรปรึกษาแพทย์\nคุยกับทีม {brand} ทาง {channel} สำหรับคำแนะนำเฉพาะค่ะ",
        ],
        Language.EN: [
            "Elderly mental health care:\n\n• Give time and attention\n• Listen and talk attentively\n"
            "• Create enjoyable activities\n• Maintain social connections\n\n"
            "💚 Consult a doctor for severe depression or anxiety\nContact the {brand} team via {channel} for specific guidance.",
        ],
    },
    Topic.MEDICATION: {
        Language.TH: [
            "การจัดการยาสำหรับผู้สูงอายุ:\n\n• ใช้กล่องยาแบ่งตามวันและเวลา\n• ตั้งเตือนเวลารับประทานยา\n"
            "• เก็บยาในที่แห้งและเย็น\n• ตรวจสอบวันหมดอายุสม่ำเสมอ\n\n"
            "⚠️ ห้ามเปลี่ยนแปลงยาโดยไม่ปรึกษาแพทย์\nคุยกับทีม {brand} ทาง {channel} สำหรับระบบจัดการยาค่ะ",
        ],
        Language.EN: [
            "Medication management for elderly:\n\n• Use a pill organizer by day and time\n• Set medication reminders\n"
            "• Store in a cool, dry place\n• Check expiration dates regularly\n\n"
            "⚠️ Never change medication without consulting a doctor\n"
            "Contact the {brand} team via {channel} for medication management systems.",
        ],
    },
    Topic.EMERGENCY: {
        Language.TH: [
            "🚨 สถานการณ์ฉุกเฉิน:\n\nโทรเลย: {emergency_number} (ฉุกเฉิน) หรือ {hotline_number} (สายด่วนผู้สูงอายุ)\n"
            "ติดต่อแพทย์หรือเจ้าหน้าที่ทางการแพทย์ทันที\n\n"
            "ขณะรอความช่วยเหลือ:\n• รักษาความสงบ\n• ตรวจสอบการหายใจและชีพจร\n"
            "• ไม่เคลื่อนย้ายผู้ป่วยหากสงสัยกระดูกหัก\n• บันทึกอาการและเวลา\n\n"
            "คุยกับทีม {brand} ทาง {channel} หลังสถานการณ์คลี่คลายค่ะ",
        ],
        Language.EN: [
            "🚨 Emergency situation:\n\nCall immediately: {emergency_number} (Emergency) or {hotline_number} (Elderly hotline)\n"
            "Contact a doctor or emergency medical staff right away.\n\n"
            "While waiting for help:\n• Stay calm\n• Check breathing and pulse\n"
            "• Don't move the patient if a fracture is suspected\n• Record symptoms and time\n\n"
            "Contact the {brand} team via {channel} after the situation resolves.",
        ],
    },
}

CONTEXT_NOTES: Dict[Language, Dict[str, str]] = {
    Language.TH: {
        "long_conversation": "\n\nเนื่องจากเราได้คุยกันมาสักพักแล้ว หากต้องการคำแนะนำเฉพาะเจาะจงมากขึ้น "
                             "แนะนำให้คุยกับทีม {brand} ทาง {channel} ค่ะ",
        "repeated_topic": "\n\nหากคำแนะนำนี้ไม่ตรงกับสถานการณ์ของคุณ กรุณาอธิบายรายละเอียดเพิ่มเติม"
                          "หรือติดต่อทีม {brand} ทาง {channel} ค่ะ",
    },
    Language.EN: {
        "long_conversation": "\n\nSince we've been chatting for a while, for more specific advice, "
                             "I recommend contacting the {brand} team via {channel}.",
        "repeated_topic": "\n\nIf this advice doesn't match your situation, please provide more details "
                          "or contact the {brand} team via {channel}.",
    },
}

# Used only if a formatted catalog entry somehow ends up empty
LAST_RESORT_RESPONSE = "Please contact our care team, or call {emergency_number} in an emergency."

TopicLike = Union[Topic, str, None]
LanguageLike = Union[Language, str, None]


class TopicUsageCounter:
    """
    Per-topic count of fallback replies served.

    One lock per topic; increments on different topics never contend.
    State is per process and is lost on restart.
    """

    def __init__(self):
        self._locks: Dict[Topic, threading.Lock] = {topic: threading.Lock() for topic in Topic}
        self._counts: Dict[Topic, int] = {topic: 0 for topic in Topic}

    def increment(self, topic: Topic) -> int:
        """Record one usage and return the new count."""
        with self._locks[topic]:
            self._counts[topic] += 1
            return self._counts[topic]

    def get(self, topic: Topic) -> int:
        with self._locks[topic]:
            return self._counts[topic]

    def snapshot(self) -> Dict[str, int]:
        """Non-zero counts keyed by topic value."""
        stats = {}
        for topic in Topic:
            count = self.get(topic)
            if count:
                stats[topic.value] = count
        return stats

    def reset(self):
        for topic in Topic:
            with self._locks[topic]:
                self._counts[topic] = 0


class FallbackResponseCatalog:
    """
    Static per-topic, per-language fallback replies.

    Contextual replies append a handoff note for long conversations and a
    "tell me more" note when the same topic has already been served.
    """

    CONTEXT_TURN_THRESHOLD = 3

    def __init__(
        self,
        usage_counter: Optional[TopicUsageCounter] = None,
        brand_name: str = "Jirung",
        channel_name: str = "LINE",
        emergency_number: str = "1669",
        hotline_number: str = "1646",
        context_turn_threshold: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the catalog.

        Args:
            usage_counter: Counter store; each catalog gets its own when omitted
            brand_name: Team name rendered into the replies
            channel_name: Handoff channel rendered into the replies
            emergency_number: Emergency telephone number
            hotline_number: Elderly hotline number
            context_turn_threshold: Turns after which the handoff note is appended
            rng: Random source for variant selection
        """
        self.usage_counter = usage_counter or TopicUsageCounter()
        self.context_turn_threshold = (
            context_turn_threshold if context_turn_threshold is not None
            else self.CONTEXT_TURN_THRESHOLD
        )
        self._rng = rng or random.Random()
        self._placeholders = {
            "brand": brand_name,
            "channel": channel_name,
            "emergency_number": emergency_number,
            "hotline_number": hotline_number,
        }

    def get_response(self, topic: TopicLike, language: LanguageLike = DEFAULT_LANGUAGE) -> str:
        """Random variant for the topic; unknown topics use the general entry."""
        variants = self.variants(topic, language)
        return self._rng.choice(variants)

    def variants(self, topic: TopicLike, language: LanguageLike = DEFAULT_LANGUAGE) -> List[str]:
        """All rendered variants for a topic and language."""
        topic = Topic.parse(topic)
        language = Language.parse(language)
        entry = FALLBACK_RESPONSES.get(topic) or FALLBACK_RESPONSES[DEFAULT_TOPIC]
        texts = entry.get(language) or entry.get(DEFAULT_LANGUAGE) or []
        rendered = [self._render(text) for text in texts if text]
        return rendered or [self._render(LAST_RESORT_RESPONSE)]

    def get_contextual_response(
        self,
        topic: TopicLike,
        language: LanguageLike = DEFAULT_LANGUAGE,
        turn_count: int = 1,
        usage_count: Optional[int] = None,
    ) -> str:
        """
        Fallback reply adjusted to the conversation.

        Args:
            topic: Classified topic
            language: Reply language
            turn_count: User turns so far in the conversation
            usage_count: Times this topic's fallback has been served, including
                this one. When omitted, one usage is recorded in the counter
                store and the new count is used.

        Returns:
            Reply text, never empty
        """
        topic = Topic.parse(topic)
        language = Language.parse(language)

        if usage_count is None:
            usage_count = self.usage_counter.increment(topic)

        if topic is Topic.EMERGENCY:
            return self.get_emergency_response(language)

        response = self.get_response(topic, language)
        notes = CONTEXT_NOTES.get(language, CONTEXT_NOTES[DEFAULT_LANGUAGE])

        if (turn_count or 0) > self.context_turn_threshold:
            response += self._render(notes["long_conversation"])

        if usage_count > 1:
            response += self._render(notes["repeated_topic"])

        return response

    def get_emergency_response(self, language: LanguageLike = DEFAULT_LANGUAGE) -> str:
        return self.get_response(Topic.EMERGENCY, language)

    def available_topics(self) -> List[Topic]:
        return list(FALLBACK_RESPONSES.keys())

    def has_topic(self, topic: TopicLike) -> bool:
        if isinstance(topic, Topic):
            return topic in FALLBACK_RESPONSES
        return any(t.value == topic for t in FALLBACK_RESPONSES)

    def usage_stats(self) -> Dict[str, int]:
        return self.usage_counter.snapshot()

    def reset_usage(self):
        self.usage_counter.reset()
        logger.info("Fallback usage counters reset")

    def _render(self, text: str) -> str:
        return text.format(**self._placeholders)


EMERGENCY_FALLBACK_KEYWORDS: Dict[Language, List[str]] = {
    Language.TH: [
        "หมดสติ", "หายใจไม่ออก", "เจ็บหน้าอก", "ชัก", "ล้ม", "เลือดออก",
        "ไข้สูง", "ปวดหัวรุนแรง", "อาเจียนเลือด", "ท้องเสีย", "หน้าเบี้ยว",
        "พูดไม่ได้", "เดินไม่ได้", "ปวดท้องรุนแรง", "หายใจหอบ",
    ],
    Language.EN: [
        "unconscious", "can't breathe", "chest pain", "seizure", "fell", "bleeding",
        "high fever", "severe headache", "vomiting blood", "diarrhea", "face drooping",
        "can't speak", "can't walk", "severe abdominal pain", "difficulty breathing",
    ],
}


def should_use_emergency_fallback(message: Optional[str]) -> bool:
    """
    True if a message describes symptoms that warrant the emergency text.

    Broader than the handoff advisor's list: falls and fevers also qualify,
    since the fallback path has no generator to judge severity.
    """
    if not message:
        return False
    message_lower = message.lower()
    return any(
        kw.lower() in message_lower
        for language in Language
        for kw in EMERGENCY_FALLBACK_KEYWORDS[language]
    )
