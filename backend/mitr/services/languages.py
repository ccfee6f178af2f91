"""Supported response languages and their prompt directives."""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class LanguageInfo:
    code: str
    name: str
    native_name: str
    locale: str
    directive: str


SUPPORTED_LANGUAGES: tuple[LanguageInfo, ...] = (
    LanguageInfo("en", "English", "English", "en-IN",
                 "Respond in simple English. Use Indian English conventions."),
    LanguageInfo("hi", "Hindi", "हिन्दी", "hi-IN",
                 "हिंदी में जवाब दें। सरल और स्पष्ट भाषा का प्रयोग करें।"),
    LanguageInfo("ta", "Tamil", "தமிழ்", "ta-IN",
                 "தமிழில் பதிலளிக்கவும். எளிய மற்றும் தெளிவான மொழியைப் பயன்படுத்தவும்."),
    LanguageInfo("te", "Telugu", "తెలుగు", "te-IN",
                 "తెలుగులో స్పందించండి. సరళమైన మరియు స్పష్టమైన భాషను ఉపయోగించండి."),
    LanguageInfo("bn", "Bengali", "বাংলা", "bn-IN",
                 "বাংলায় উত্তর দিন। সহজ এবং স্পষ্ট ভাষা ব্যবহার করুন।"),
    LanguageInfo("mr", "Marathi", "मराठी", "mr-IN",
                 "मराठीत उत्तर द्या. सोपी आणि स्पष्ट भाषा वापरा."),
    LanguageInfo("gu", "Gujarati", "ગુજરાતી", "gu-IN",
                 "ગુજરાતીમાં જવાબ આપો. સરળ અને સ્પષ્ટ ભાષાનો ઉપયોગ કરો."),
    LanguageInfo("kn", "Kannada", "ಕನ್ನಡ", "kn-IN",
                 "ಕನ್ನಡದಲ್ಲಿ ಉತ್ತರಿಸಿ. ಸರಳ ಮತ್ತು ಸ್ಪಷ್ಟ ಭಾಷೆಯನ್ನು ಬಳಸಿ."),
    LanguageInfo("ml", "Malayalam", "മലയാളം", "ml-IN",
                 "മലയാളത്തിൽ മറുപടി നൽകുക. ലളിതവും വ്യക്തവുമായ ഭാഷ ഉപയോഗിക്കുക."),
    LanguageInfo("pa", "Punjabi", "ਪੰਜਾਬੀ", "pa-IN",
                 "ਪੰਜਾਬੀ ਵਿੱਚ ਜਵਾਬ ਦਿਓ। ਸਧਾਰਨ ਅਤੇ ਸਪੱਸ਼ਟ ਭਾਸ਼ਾ ਦੀ ਵਰਤੋਂ ਕਰੋ।"),
    LanguageInfo("or", "Odia", "ଓଡ଼ିଆ", "or-IN",
                 "ଓଡ଼ିଆରେ ଉତ୍ତର ଦିଅନ୍ତୁ। ସରଳ ଏବଂ ସ୍ପଷ୍ଟ ଭାଷା ବ୍ୟବହାର କରନ୍ତୁ।"),
    LanguageInfo("as", "Assamese", "অসমীয়া", "as-IN",
                 "অসমীয়াত উত্তৰ দিয়ক। সৰল আৰু স্পষ্ট ভাষা ব্যৱহাৰ কৰক।"),
)

_BY_CODE: dict[str, LanguageInfo] = {language.code: language for language in SUPPORTED_LANGUAGES}

# Order matters: Marathi shares the Devanagari block with Hindi and is
# told apart by a common Marathi conjunction.
_SCRIPT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("mr", re.compile(r"[ऀ-ॿ].*आणि|आणि.*[ऀ-ॿ]", re.DOTALL)),
    ("hi", re.compile(r"[ऀ-ॿ]")),
    ("ta", re.compile(r"[஀-௿]")),
    ("te", re.compile(r"[ఀ-౿]")),
    ("as", re.compile(r"[ৰৱ]")),
    ("bn", re.compile(r"[ঀ-৿]")),
    ("gu", re.compile(r"[઀-૿]")),
    ("kn", re.compile(r"[ಀ-೿]")),
    ("ml", re.compile(r"[ഀ-ൿ]")),
    ("pa", re.compile(r"[਀-੿]")),
    ("or", re.compile(r"[଀-୿]")),
)


def get_language(code: str | None) -> LanguageInfo:
    """Language record for ``code``; unknown or empty codes fall back to English."""
    return _BY_CODE.get((code or "").strip().lower(), _BY_CODE[DEFAULT_LANGUAGE])


def is_supported(code: str | None) -> bool:
    return (code or "").strip().lower() in _BY_CODE


def detect_language(text: str, default: str = DEFAULT_LANGUAGE) -> str:
    """Language code guessed from the Unicode script of ``text``; Latin text gives ``default``."""
    for code, pattern in _SCRIPT_PATTERNS:
        if pattern.search(text or ""):
            return code
    return default
