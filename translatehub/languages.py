from typing import Dict, Optional, Tuple

# code -> (name, ISO 639-3 code used by ElevenLabs Scribe)
LANGUAGES: Dict[str, Tuple[str, str]] = {
    "en": ("English", "eng"),
    "es": ("Spanish", "spa"),
    "fr": ("French", "fra"),
    "de": ("German", "deu"),
    "zh": ("Chinese", "cmn"),
    "hi": ("Hindi", "hin"),
    "pa": ("Punjabi", "pan"),
    "gu": ("Gujarati", "guj"),
    "bn": ("Bengali", "ben"),
    "ta": ("Tamil", "tam"),
    "te": ("Telugu", "tel"),
    "ml": ("Malayalam", "mal"),
    "mr": ("Marathi", "mar"),
    "kn": ("Kannada", "kan"),
    "ur": ("Urdu", "urd"),
    "it": ("Italian", "ita"),
    "pt": ("Portuguese", "por"),
    "ru": ("Russian", "rus"),
    "ja": ("Japanese", "jpn"),
    "ko": ("Korean", "kor"),
    "ar": ("Arabic", "ara"),
    "tr": ("Turkish", "tur"),
    "vi": ("Vietnamese", "vie"),
    "id": ("Indonesian", "ind"),
    "th": ("Thai", "tha"),
    "pl": ("Polish", "pol"),
    "uk": ("Ukrainian", "ukr"),
    "ro": ("Romanian", "ron"),
    "nl": ("Dutch", "nld"),
    "sv": ("Swedish", "swe"),
    "fi": ("Finnish", "fin"),
    "no": ("Norwegian", "nor"),
    "da": ("Danish", "dan"),
    "cs": ("Czech", "ces"),
    "el": ("Greek", "ell"),
    "he": ("Hebrew", "heb"),
    "hu": ("Hungarian", "hun"),
}

_ISO3_TO_CODE = {iso3: code for code, (_, iso3) in LANGUAGES.items()}
_ISO3_TO_CODE.update({"zho": "zh", "yue": "zh", "nob": "no", "heb": "he"})

COMMON_LANGUAGES = ("en", "es", "fr", "de", "it", "pt", "ru", "zh", "ja", "ko")

# code -> (languageCode, voiceName) understood by the remote TTS server
TTS_VOICES: Dict[str, Tuple[str, str]] = {
    "en": ("en-US", "en-US-Wavenet-D"),
    "hi": ("hi-IN", "hi-IN-Wavenet-A"),
    "es": ("es-ES", "es-ES-Wavenet-B"),
    "fr": ("fr-FR", "fr-FR-Wavenet-B"),
    "de": ("de-DE", "de-DE-Wavenet-B"),
    "it": ("it-IT", "it-IT-Wavenet-B"),
    "pt": ("pt-PT", "pt-PT-Wavenet-B"),
    "ru": ("ru-RU", "ru-RU-Wavenet-B"),
    "ja": ("ja-JP", "ja-JP-Wavenet-B"),
    "ko": ("ko-KR", "ko-KR-Wavenet-B"),
    "zh": ("cmn-CN", "cmn-CN-Wavenet-B"),
    "zh-CN": ("cmn-CN", "cmn-CN-Wavenet-B"),
    "zh-TW": ("cmn-TW", "cmn-TW-Wavenet-A"),
    "ar": ("ar-XA", "ar-XA-Wavenet-B"),
    "bn": ("bn-IN", "bn-IN-Standard-A"),
    "pa": ("pa-IN", "pa-IN-Standard-A"),
    "gu": ("gu-IN", "gu-IN-Standard-A"),
    "ta": ("ta-IN", "ta-IN-Wavenet-A"),
    "te": ("te-IN", "te-IN-Standard-A"),
    "ml": ("ml-IN", "ml-IN-Standard-A"),
    "mr": ("mr-IN", "mr-IN-Standard-A"),
    "ur": ("ur-IN", "ur-IN-Standard-A"),
    "tr": ("tr-TR", "tr-TR-Wavenet-B"),
    "vi": ("vi-VN", "vi-VN-Wavenet-B"),
    "id": ("id-ID", "id-ID-Wavenet-B"),
    "th": ("th-TH", "th-TH-Wavenet-B"),
    "pl": ("pl-PL", "pl-PL-Wavenet-B"),
    "uk": ("uk-UA", "uk-UA-Wavenet-B"),
    "ro": ("ro-RO", "ro-RO-Wavenet-B"),
    "nl": ("nl-NL", "nl-NL-Wavenet-B"),
    "sv": ("sv-SE", "sv-SE-Wavenet-B"),
    "fi": ("fi-FI", "fi-FI-Wavenet-B"),
    "no": ("nb-NO", "nb-NO-Wavenet-B"),
    "da": ("da-DK", "da-DK-Wavenet-B"),
    "cs": ("cs-CZ", "cs-CZ-Wavenet-B"),
    "el": ("el-GR", "el-GR-Wavenet-B"),
    "he": ("he-IL", "he-IL-Wavenet-B"),
    "hu": ("hu-HU", "hu-HU-Wavenet-B"),
}
DEFAULT_VOICE = ("en-US", "en-US-Wavenet-D")


def base_code(code: Optional[str]) -> str:
    """'en-US' -> 'en'. Empty input stays empty."""
    return (code or "").strip().split("-")[0].lower()


def language_name(code: str) -> str:
    if code == "auto":
        return "the detected language"
    entry = LANGUAGES.get(base_code(code))
    return entry[0] if entry else code


def to_stt_code(code: Optional[str]) -> Optional[str]:
    """Map a UI language code to the speech service's code. 'auto' -> None."""
    if not code or code == "auto":
        return None
    entry = LANGUAGES.get(base_code(code))
    return entry[1] if entry else code


def from_stt_code(code: Optional[str]) -> str:
    if not code:
        return ""
    code = code.lower()
    if code in _ISO3_TO_CODE:
        return _ISO3_TO_CODE[code]
    return base_code(code)


def tts_voice(code: str) -> Tuple[str, str]:
    return TTS_VOICES.get(code) or TTS_VOICES.get(base_code(code)) or DEFAULT_VOICE
