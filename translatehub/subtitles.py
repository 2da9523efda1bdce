from typing import Iterable, List, Sequence

from translatehub.models import Subtitle
from translatehub.stt import Word

MAX_SEGMENT_SECONDS = 3.0
_SENTENCE_END = (".", "!", "?", "。", "！", "？")


def group_words(words: Iterable[Word], max_seconds: float = MAX_SEGMENT_SECONDS) -> List[Subtitle]:
    """Group timed words into subtitle segments.

    A segment is closed before a word that would stretch it past ``max_seconds``
    and after a word that ends a sentence.
    """
    subtitles: List[Subtitle] = []
    start = end = 0.0
    current: List[str] = []

    def flush():
        if current:
            subtitles.append(Subtitle(start=start, end=end, text=" ".join(current).strip()))
            current.clear()

    for word in words:
        text = word.text.strip()
        if not text:
            continue
        if current and word.end - start > max_seconds:
            flush()
        if not current:
            start = word.start
        current.append(text)
        end = word.end
        if text.endswith(_SENTENCE_END):
            flush()
    flush()
    return subtitles


def format_timestamp(seconds: float) -> str:
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, ms = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{ms:03d}"


def to_srt(subtitles: Sequence[Subtitle]) -> str:
    blocks = []
    for index, sub in enumerate(subtitles, start=1):
        blocks.append(f"{index}\n{format_timestamp(sub.start)} --> {format_timestamp(sub.end)}\n{sub.text}\n\n")
    return "".join(blocks)


def parse_subtitles(items) -> List[Subtitle]:
    """Build Subtitle objects from ``[{start, end, text}]`` JSON."""
    out = []
    for item in items or []:
        out.append(Subtitle(start=float(item.get("start", 0)), end=float(item.get("end", 0)), text=str(item.get("text", ""))))
    return out


_DEMO_LINES = {
    "en": [
        "Hello and welcome to this video presentation.",
        "Today we'll be discussing important topics.",
        "Let me show you how this works in practice.",
        "As you can see, the results are quite impressive.",
        "This demonstrates the power of modern technology.",
        "Thank you for watching this demonstration.",
    ],
    "es": [
        "Hola y bienvenidos a esta presentación de video.",
        "Hoy discutiremos temas importantes.",
        "Déjame mostrarte cómo funciona esto en la práctica.",
        "Como puedes ver, los resultados son bastante impresionantes.",
        "Esto demuestra el poder de la tecnología moderna.",
        "Gracias por ver esta demostración.",
    ],
    "fr": [
        "Bonjour et bienvenue à cette présentation vidéo.",
        "Aujourd'hui, nous discuterons de sujets importants.",
        "Laissez-moi vous montrer comment cela fonctionne en pratique.",
        "Comme vous pouvez le voir, les résultats sont assez impressionnants.",
        "Cela démontre la puissance de la technologie moderne.",
        "Merci d'avoir regardé cette démonstration.",
    ],
    "de": [
        "Hallo und willkommen zu dieser Video-Präsentation.",
        "Heute werden wir wichtige Themen besprechen.",
        "Lassen Sie mich zeigen, wie das in der Praxis funktioniert.",
        "Wie Sie sehen können, sind die Ergebnisse ziemlich beeindruckend.",
        "Dies zeigt die Macht der modernen Technologie.",
        "Vielen Dank, dass Sie sich diese Demonstration angesehen haben.",
    ],
    "hi": [
        "नमस्ते और इस वीडियो प्रेजेंटेशन में आपका स्वागत है।",
        "आज हम महत्वपूर्ण विषयों पर चर्चा करेंगे।",
        "मुझे आपको दिखाने दें कि यह व्यवहार में कैसे काम करता है।",
        "जैसा कि आप देख सकते हैं, परिणाम काफी प्रभावशाली हैं।",
        "यह आधुनिक तकनीक की शक्ति को प्रदर्शित करता है।",
        "इस प्रदर्शन को देखने के लिए धन्यवाद।",
    ],
}


def demo_subtitles(duration: float, language: str) -> List[Subtitle]:
    """Evenly spaced sample subtitles, used when the speech service is down."""
    lines = _DEMO_LINES.get(language) or _DEMO_LINES["en"]
    step = duration / len(lines)
    out = []
    for index, text in enumerate(lines):
        start = index * step
        end = min((index + 1) * step, duration)
        out.append(Subtitle(start=max(0.0, start), end=max(start + 1, end), text=text))
    return out
