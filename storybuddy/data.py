"""
Static reference data for Story Buddy.

Holds the supported languages, the predefined practice situations with their
template dialogues, the German phrasebook used to annotate words, and the
stoplists shared by the quiz engine and the vocabulary tracker.
"""

from typing import Dict, List, Tuple

from .models import Character, Language, Situation


# ---------------------------------------------------------------------------
# Languages
# ---------------------------------------------------------------------------

# German only for now; add entries here to expand.
LANGUAGES: List[Language] = [
    Language(code="de", name="German", flag="🇩🇪"),
]

DEFAULT_LANGUAGE = LANGUAGES[0]

# BCP-47 locale used for speech I/O per language code
SPEECH_LOCALES: Dict[str, str] = {
    "de": "de-DE",
}


# ---------------------------------------------------------------------------
# Situations
# ---------------------------------------------------------------------------

PREDEFINED_SITUATIONS: List[Situation] = [
    Situation(id="restaurant", title="Ordering at a restaurant",
              description="Practice ordering food and drinks"),
    Situation(id="airport", title="At the airport",
              description="Check-in, security, and travel conversations"),
    Situation(id="job-interview", title="Job interview",
              description="Professional interview scenarios"),
    Situation(id="shopping", title="Shopping for clothes",
              description="Buying items and asking for help"),
    Situation(id="hotel", title="Hotel check-in",
              description="Booking and checking into accommodation"),
    Situation(id="doctor", title="Doctor appointment",
              description="Medical consultations and health discussions"),
    Situation(id="directions", title="Asking for directions",
              description="Navigation and location conversations"),
    Situation(id="bank", title="At the bank",
              description="Banking services and transactions"),
]

CUSTOM_SITUATION_PREFIX = "custom-"


def get_situation(situation_id: str) -> Situation:
    """Look up a predefined situation; unknown ids fall back to the restaurant."""
    for situation in PREDEFINED_SITUATIONS:
        if situation.id == situation_id:
            return situation
    return PREDEFINED_SITUATIONS[0]


# ---------------------------------------------------------------------------
# Template dialogues (German)
# ---------------------------------------------------------------------------

# situation id -> ((first speaker, second speaker), lines). Speakers alternate.
GERMAN_TEMPLATES: Dict[str, Tuple[Tuple[Character, Character], List[str]]] = {
    "restaurant": (
        (Character("Anna", "Customer", "👩"), Character("Klaus", "Waiter", "👨‍🍳")),
        [
            "Guten Abend! Haben Sie einen Tisch für zwei Personen?",
            "Guten Abend! Ja, natürlich. Folgen Sie mir bitte.",
            "Vielen Dank. Könnten wir die Speisekarte bekommen?",
            "Selbstverständlich. Hier ist die Karte. Möchten Sie etwas trinken?",
            "Ja, ich hätte gerne ein Glas Rotwein, bitte.",
            "Ausgezeichnete Wahl. Und haben Sie schon gewählt?",
            "Ich nehme das Schnitzel mit Kartoffelsalat.",
            "Sehr gut. Das Schnitzel ist heute besonders frisch.",
            "Wie lange dauert es ungefähr?",
            "Etwa zwanzig Minuten. Ist das in Ordnung?",
            "Ja, das ist perfekt. Vielen Dank.",
            "Gern geschehen. Ich bringe Ihnen gleich den Wein.",
            "Könnten Sie mir auch etwas Brot bringen?",
            "Natürlich, ich bringe Ihnen frisches Brot.",
            "Sie sind sehr freundlich. Danke schön.",
            "Das ist unser Service. Genießen Sie Ihr Essen.",
            "Das werde ich sicher. Alles sieht köstlich aus.",
            "Freut mich zu hören. Rufen Sie mich, wenn Sie etwas brauchen.",
            "Machen wir. Könnten wir später die Rechnung haben?",
            "Selbstverständlich. Ich bringe sie Ihnen zum Dessert.",
        ],
    ),
    "airport": (
        (Character("Maria", "Passenger", "👩‍💼"), Character("Hans", "Check-in Agent", "👨‍💼")),
        [
            "Guten Morgen! Ich möchte einchecken.",
            "Guten Morgen! Haben Sie Ihren Reisepass und Ihr Ticket?",
            "Ja, hier sind sie. Mein Flug geht nach München.",
            "Danke. Haben Sie Gepäck zum Aufgeben?",
            "Ja, ich habe einen Koffer.",
            "Perfekt. Stellen Sie ihn bitte auf die Waage.",
            "Ist das Gewicht in Ordnung?",
            "Ja, das passt. Möchten Sie einen Fensterplatz?",
            "Das wäre toll, wenn möglich.",
            "Kein Problem. Hier ist Ihre Bordkarte.",
            "Wann beginnt das Boarding?",
            "Das Boarding beginnt um 10:30 Uhr.",
            "Wo ist das Gate?",
            "Gate B12. Folgen Sie den Schildern.",
            "Wie lange dauert der Flug?",
            "Etwa eine Stunde und fünfzehn Minuten.",
            "Gibt es Verspätungen?",
            "Nein, der Flug ist pünktlich.",
            "Vielen Dank für Ihre Hilfe.",
            "Gern geschehen. Haben Sie einen guten Flug!",
        ],
    ),
    "job-interview": (
        (Character("Sarah", "Applicant", "👩‍💼"), Character("Herr Weber", "Interviewer", "👨‍💼")),
        [
            "Guten Tag, Frau Schmidt. Schön, Sie kennenzulernen.",
            "Guten Tag, Herr Weber. Freut mich auch.",
            "Bitte nehmen Sie Platz. Möchten Sie etwas trinken?",
            "Ein Glas Wasser wäre schön, danke.",
            "Erzählen Sie mir etwas über sich.",
            "Ich bin Informatikerin und arbeite seit fünf Jahren in der Branche.",
            "Das ist beeindruckend. Warum möchten Sie bei uns arbeiten?",
            "Ihr Unternehmen hat einen sehr guten Ruf.",
            "Was sind Ihre Stärken?",
            "Ich bin sehr organisiert und arbeite gerne im Team.",
            "Haben Sie Erfahrung mit unserem System?",
            "Ja, ich habe drei Jahre damit gearbeitet.",
            "Welche Ziele haben Sie für die Zukunft?",
            "Ich möchte meine Fähigkeiten weiterentwickeln.",
            "Haben Sie noch Fragen an mich?",
            "Wann kann ich mit einer Antwort rechnen?",
            "Wir melden uns bis Ende der Woche.",
            "Das ist perfekt. Vielen Dank.",
            "Danke für Ihr Interesse. Auf Wiedersehen.",
            "Auf Wiedersehen und einen schönen Tag!",
        ],
    ),
    "shopping": (
        (Character("Lisa", "Customer", "👩"), Character("Petra", "Sales Assistant", "👩‍💼")),
        [
            "Entschuldigung, können Sie mir helfen?",
            "Natürlich! Was suchen Sie denn?",
            "Ich brauche ein Kleid für eine Hochzeit.",
            "Welche Größe haben Sie?",
            "Größe 38, bitte.",
            "Welche Farbe bevorzugen Sie?",
            "Etwas in Blau oder Grün wäre schön.",
            "Hier haben wir ein schönes blaues Kleid.",
            "Das gefällt mir. Kann ich es anprobieren?",
            "Selbstverständlich. Die Umkleidekabine ist dort drüben.",
            "Wie steht es mir?",
            "Es sieht wunderbar aus! Die Farbe passt perfekt.",
            "Was kostet das Kleid?",
            "Es kostet 89 Euro.",
            "Das ist ein fairer Preis. Ich nehme es.",
            "Möchten Sie auch passende Schuhe dazu?",
            "Ja, das wäre toll. Welche haben Sie?",
            "Diese schwarzen Pumps würden gut passen.",
            "Perfekt. Ich nehme beides.",
            "Wunderbar! Das macht zusammen 139 Euro.",
        ],
    ),
    "hotel": (
        (Character("Thomas", "Guest", "👨"), Character("Frau Müller", "Receptionist", "👩‍💼")),
        [
            "Guten Abend! Ich habe eine Reservierung.",
            "Guten Abend! Wie ist Ihr Name, bitte?",
            "Thomas Schmidt. Ich habe für drei Nächte gebucht.",
            "Einen Moment, bitte. Ja, hier ist Ihre Reservierung.",
            "Ist das Zimmer bereit?",
            "Ja, Zimmer 205. Hier ist Ihr Schlüssel.",
            "Gibt es WLAN im Zimmer?",
            "Ja, das WLAN ist kostenlos. Das Passwort steht im Zimmer.",
            "Wann gibt es Frühstück?",
            "Das Frühstück wird von 7 bis 10 Uhr serviert.",
            "Wo ist der Frühstücksraum?",
            "Im Erdgeschoss, gleich neben der Rezeption.",
            "Haben Sie einen Parkplatz?",
            "Ja, der Parkplatz ist hinter dem Hotel.",
            "Ist er kostenlos?",
            "Ja, für unsere Gäste ist er kostenlos.",
            "Gibt es einen Safe im Zimmer?",
            "Ja, jedes Zimmer hat einen elektronischen Safe.",
            "Vielen Dank für die Informationen.",
            "Gern geschehen. Ich wünsche Ihnen einen angenehmen Aufenthalt!",
        ],
    ),
    "doctor": (
        (Character("Herr Klein", "Patient", "👨"), Character("Dr. Wagner", "Doctor", "👨‍⚕️")),
        [
            "Guten Tag, Herr Klein. Was kann ich für Sie tun?",
            "Guten Tag, Doktor. Mir geht es nicht gut.",
            "Was für Beschwerden haben Sie?",
            "Ich habe Kopfschmerzen und fühle mich müde.",
            "Seit wann haben Sie diese Symptome?",
            "Seit etwa drei Tagen.",
            "Haben Sie Fieber?",
            "Ja, gestern Abend hatte ich 38,5 Grad.",
            "Nehmen Sie regelmäßig Medikamente?",
            "Nein, normalerweise nehme ich keine Medikamente.",
            "Ich werde Sie kurz untersuchen.",
            "In Ordnung, Doktor.",
            "Ihr Hals ist etwas rot. Es könnte eine Erkältung sein.",
            "Was soll ich dagegen tun?",
            "Trinken Sie viel Wasser und ruhen Sie sich aus.",
            "Soll ich Medikamente nehmen?",
            "Ich verschreibe Ihnen etwas gegen die Schmerzen.",
            "Wann soll ich wiederkommen?",
            "Wenn es nicht besser wird, kommen Sie in drei Tagen wieder.",
            "Vielen Dank, Doktor. Auf Wiedersehen!",
        ],
    ),
    "directions": (
        (Character("Tourist", "Tourist", "🧳"), Character("Einheimischer", "Local", "👨")),
        [
            "Entschuldigung, können Sie mir helfen?",
            "Ja, gerne. Was suchen Sie denn?",
            "Ich suche das Rathaus.",
            "Das Rathaus ist nicht weit von hier.",
            "Wie komme ich dorthin?",
            "Gehen Sie diese Straße geradeaus.",
            "Wie weit ist es zu Fuß?",
            "Etwa zehn Minuten.",
            "Muss ich irgendwo abbiegen?",
            "Ja, an der zweiten Ampel biegen Sie links ab.",
            "Gibt es Schilder?",
            "Ja, folgen Sie den braunen Schildern.",
            "Ist das Rathaus heute geöffnet?",
            "Ja, es ist bis 17 Uhr geöffnet.",
            "Gibt es in der Nähe ein Café?",
            "Ja, gleich neben dem Rathaus ist ein schönes Café.",
            "Wie heißt es?",
            "Café Central. Es hat sehr guten Kuchen.",
            "Vielen Dank für Ihre Hilfe!",
            "Gern geschehen. Viel Spaß beim Besichtigen!",
        ],
    ),
    "bank": (
        (Character("Kunde", "Customer", "👨‍💼"), Character("Bankangestellte", "Bank Employee", "👩‍💼")),
        [
            "Guten Tag! Ich möchte ein Konto eröffnen.",
            "Guten Tag! Welche Art von Konto möchten Sie?",
            "Ein Girokonto, bitte.",
            "Haben Sie Ihren Ausweis dabei?",
            "Ja, hier ist mein Personalausweis.",
            "Danke. Sind Sie berufstätig?",
            "Ja, ich arbeite als Ingenieur.",
            "Wie hoch ist Ihr monatliches Einkommen?",
            "Etwa 3500 Euro netto.",
            "Möchten Sie eine Kreditkarte dazu?",
            "Ja, das wäre praktisch.",
            "Die Kreditkarte kostet 30 Euro im Jahr.",
            "Das ist in Ordnung.",
            "Brauchen Sie auch Online-Banking?",
            "Ja, unbedingt.",
            "Perfekt. Hier sind die Unterlagen zum Unterschreiben.",
            "Wann bekomme ich meine Karte?",
            "In etwa einer Woche per Post.",
            "Vielen Dank für Ihre Hilfe.",
            "Gern geschehen. Willkommen bei unserer Bank!",
        ],
    ),
}

DEFAULT_TEMPLATE = "restaurant"


# ---------------------------------------------------------------------------
# Phrasebook
# ---------------------------------------------------------------------------

# Case-sensitive: sentence-initial forms are listed separately.
GERMAN_PHRASEBOOK: Dict[str, Tuple[str, str]] = {
    "Guten": ("Good", "✨"),
    "Abend": ("evening", "🌆"),
    "Morgen": ("morning", "🌅"),
    "Tag": ("day", "☀️"),
    "Haben": ("have", "🤝"),
    "Sie": ("you (formal)", "👤"),
    "einen": ("a/an (masc.)", "1️⃣"),
    "eine": ("a/an (fem.)", "1️⃣"),
    "ein": ("a/an (neut.)", "1️⃣"),
    "Tisch": ("table", "🪑"),
    "für": ("for", "👥"),
    "zwei": ("two", "2️⃣"),
    "drei": ("three", "3️⃣"),
    "Personen": ("people", "👫"),
    "Ja": ("Yes", "✅"),
    "Nein": ("No", "❌"),
    "natürlich": ("naturally/of course", "🌿"),
    "Folgen": ("Follow", "👣"),
    "mir": ("me", "👨"),
    "bitte": ("please", "🙏"),
    "Vielen": ("Many", "💯"),
    "Dank": ("thanks", "🙏"),
    "Danke": ("Thank you", "🙏"),
    "Könnten": ("Could", "❓"),
    "wir": ("we", "👥"),
    "die": ("the (fem./plural)", "📋"),
    "der": ("the (masc.)", "📋"),
    "das": ("the (neut.)", "📋"),
    "Speisekarte": ("menu", "📋"),
    "bekommen": ("get/receive", "📥"),
    "Selbstverständlich": ("Of course", "✅"),
    "Hier": ("Here", "👉"),
    "ist": ("is", "📍"),
    "sind": ("are", "👥"),
    "Karte": ("menu/card", "📋"),
    "Möchten": ("Would like", "💭"),
    "etwas": ("something", "🤔"),
    "trinken": ("drink", "🥤"),
    "ich": ("I", "👤"),
    "hätte": ("would have", "💭"),
    "gerne": ("gladly/would like", "😊"),
    "Glas": ("glass", "🍷"),
    "Rotwein": ("red wine", "🍷"),
    "Wein": ("wine", "🍷"),
    "Wasser": ("water", "💧"),
    "Ausgezeichnete": ("Excellent", "⭐"),
    "Wahl": ("choice", "✨"),
    "Und": ("And", "➕"),
    "haben": ("have", "🤝"),
    "schon": ("already", "⏰"),
    "gewählt": ("chosen", "✅"),
    "nehme": ("take", "👆"),
    "Schnitzel": ("schnitzel", "🥩"),
    "mit": ("with", "➕"),
    "Kartoffelsalat": ("potato salad", "🥔"),
    "Sehr": ("Very", "💯"),
    "gut": ("good", "👍"),
    "heute": ("today", "📅"),
    "besonders": ("especially", "⭐"),
    "frisch": ("fresh", "🌿"),
    "Wie": ("How", "❓"),
    "Was": ("What", "❓"),
    "Wo": ("Where", "📍"),
    "Wann": ("When", "⏰"),
    "lange": ("long", "⏱️"),
    "dauert": ("takes/lasts", "⏰"),
    "es": ("it", "👉"),
    "ungefähr": ("approximately", "≈"),
    "Etwa": ("About", "≈"),
    "zwanzig": ("twenty", "2️⃣0️⃣"),
    "Minuten": ("minutes", "⏰"),
    "Ist": ("Is", "❓"),
    "in": ("in", "📍"),
    "Ordnung": ("order/OK", "✅"),
    "perfekt": ("perfect", "💯"),
    "Gern": ("Gladly", "😊"),
    "geschehen": ("happened/done", "✨"),
    "bringe": ("bring", "🚶‍♂️"),
    "Ihnen": ("you (formal, dative)", "👤"),
    "gleich": ("right away", "⚡"),
    "den": ("the (masc. acc.)", "👉"),
    "auch": ("also", "➕"),
    "Brot": ("bread", "🍞"),
    "bringen": ("bring", "🚶‍♂️"),
    "Natürlich": ("Naturally", "🌿"),
    "frisches": ("fresh", "🌿"),
    "sehr": ("very", "💯"),
    "freundlich": ("friendly", "😊"),
    "schön": ("nice/beautiful", "✨"),
    "unser": ("our", "👥"),
    "Service": ("service", "🤝"),
    "Genießen": ("Enjoy", "😋"),
    "Ihr": ("Your", "👤"),
    "Essen": ("food/meal", "🍽️"),
    "werde": ("will", "➡️"),
    "sicher": ("surely/safe", "✅"),
    "Alles": ("Everything", "💯"),
    "sieht": ("looks", "👀"),
    "köstlich": ("delicious", "😋"),
    "aus": ("out/like", "👀"),
    "Freut": ("Pleased", "😊"),
    "mich": ("me", "👤"),
    "zu": ("to", "➡️"),
    "hören": ("hear", "👂"),
    "Rufen": ("Call", "📞"),
    "wenn": ("when/if", "⏰"),
    "brauchen": ("need", "🤲"),
    "Machen": ("Do/Make", "✅"),
    "später": ("later", "⏰"),
    "Rechnung": ("bill", "🧾"),
    "zum": ("to the", "➡️"),
    "Dessert": ("dessert", "🍰"),
    "möchte": ("would like", "💭"),
    "einchecken": ("check in", "✈️"),
    "Reisepass": ("passport", "📘"),
    "Ticket": ("ticket", "🎫"),
    "Flug": ("flight", "✈️"),
    "geht": ("goes", "➡️"),
    "nach": ("to/after", "➡️"),
    "München": ("Munich", "🏙️"),
    "Gepäck": ("luggage", "🧳"),
    "Aufgeben": ("check in", "📦"),
    "Koffer": ("suitcase", "🧳"),
    "Stellen": ("Put/Place", "📍"),
    "auf": ("on", "⬆️"),
    "Waage": ("scale", "⚖️"),
    "Gewicht": ("weight", "⚖️"),
    "passt": ("fits", "✅"),
    "Fensterplatz": ("window seat", "🪟"),
    "wäre": ("would be", "💭"),
    "toll": ("great", "🎉"),
    "möglich": ("possible", "✅"),
    "Kein": ("No", "❌"),
    "Problem": ("problem", "❌"),
    "Bordkarte": ("boarding pass", "🎫"),
    "beginnt": ("begins", "▶️"),
    "Boarding": ("boarding", "✈️"),
    "um": ("at/around", "🕐"),
    "Uhr": ("o'clock", "🕐"),
    "Gate": ("gate", "🚪"),
    "Schildern": ("signs", "🪧"),
    "Stunde": ("hour", "⏰"),
    "fünfzehn": ("fifteen", "1️⃣5️⃣"),
    "Verspätungen": ("delays", "⏰"),
    "pünktlich": ("on time", "⏰"),
    "Hilfe": ("help", "🤝"),
    "guten": ("good", "👍"),
    "Wiedersehen": ("goodbye", "👋"),
}

UNKNOWN_EMOJI = "❓"

# Glosses for short function words where positional alignment is unreliable
SHORT_WORD_GLOSSES: Dict[str, str] = {
    "ich": "I", "du": "you", "er": "he", "sie": "she", "es": "it",
    "wir": "we", "ihr": "you", "Sie": "you", "ist": "is", "bin": "am",
    "hat": "has", "und": "and", "der": "the", "die": "the", "das": "the",
    "ein": "a", "zu": "to", "in": "in", "mit": "with", "auf": "on",
    "für": "for", "von": "from", "bei": "at", "nach": "after",
    "über": "over", "unter": "under", "vor": "before",
}

# Lower-case stems -> emoji, checked exactly and then as substrings
EMOJI_HINTS: Dict[str, str] = {
    # greetings
    "hallo": "👋", "guten": "✨", "abend": "🌆", "tag": "☀️",
    # food
    "essen": "🍽️", "trinken": "🥤", "brot": "🍞", "wasser": "💧", "kaffee": "☕",
    # people
    "mann": "👨", "frau": "👩", "kind": "👶", "leute": "👥", "person": "👤",
    # places
    "haus": "🏠", "stadt": "🏙️", "land": "🌍", "straße": "🛣️", "platz": "📍",
    # time
    "zeit": "⏰", "heute": "📅", "morgen": "🌅", "gestern": "📆", "woche": "📅",
    # actions
    "gehen": "🚶", "kommen": "➡️", "sehen": "👀", "hören": "👂", "sprechen": "🗣️",
    # feelings
    "gut": "👍", "schlecht": "👎", "schön": "✨", "toll": "🎉", "freude": "😊",
    # numbers
    "eins": "1️⃣", "zwei": "2️⃣", "drei": "3️⃣", "vier": "4️⃣", "fünf": "5️⃣",
}


# ---------------------------------------------------------------------------
# Stoplists
# ---------------------------------------------------------------------------

QUIZ_STOPLIST = frozenset({
    "der", "die", "das", "und", "ist", "sind", "haben", "sie", "ich", "wir",
})

# Encounters also skip indefinite articles
ENCOUNTER_STOPLIST = QUIZ_STOPLIST | {"ein", "eine", "einen"}

# Minimum token length for quiz and vocabulary purposes
MIN_WORD_LENGTH = 3

VOCABULARY_MILESTONES = [10, 25, 50, 100, 200, 500, 1000]
