"""
Platform emote tables and emote extraction.

Chat platforms attach emote positions to each message as a list of
``(emote_id, start, end)`` spans over the message text. When the transport
omits spans, global emotes can still be recognised by their code.

Example:
    >>> spans = [EmoteSpan(id="25", start=0, end=4)]
    >>> extract_emotes("Kappa nice", spans)
    [EmoteRef(code='Kappa', id='25')]
"""

import re
from typing import Iterable, List, Sequence

from chatpulse.models.chat import EmoteRef, EmoteSpan

# Stock emotes available in every channel, compared lowercase.
GLOBAL_EMOTES = frozenset(
    code.lower()
    for code in (
        ":)", ":(", ":D", ":O", ":P", ":Z", ":\\", ":|", ":/", ":o", ":p", ":z",
        ">(", ";)", "<3", "4Head", "8-)", "AmbessaLove", "ANELE",
        "AndalusianCrush", "AnotherRecord", "ArgieB8", "ArsonNoSexy",
        "AsexualPride", "AsianGlow", "B)", "B-)", "BCWarrior", "BF6Hype", "BOP",
        "BabyRage", "BangbooBounce", "BatChest", "BegWan", "BigBrother",
        "BigPhish", "BigSad", "BisexualPride", "BlackLivesMatter", "BlargNaut",
        "BloodTrail", "BrainSlug", "BratChat", "BrokeBack", "BuddhaBar",
        "CaitThinking", "CaitlynS", "CarlSmile", "ChefFrank", "ChewyYAY",
        "Cinheimer", "CoolCat", "CoolStoryBob", "CorgiDerp", "CrreamAwk",
        "CurseLit", "DAESuppy", "DBstyle", "DansGame", "DarkKnight", "DarkMode",
        "DarthJarJar", "DatSheffy", "DendiFace", "DinoDance", "DogFace",
        "DoritosChip", "DxCat", "EarthDay", "EkkoChest", "EleGiggle",
        "EntropyWins", "ExtraLife", "FBBlock", "FBCatch", "FBChallenge",
        "FBPass", "FBPenalty", "FBRun", "FBSpiral", "FBtouchdown", "FC26GOOOAL",
        "FUNgineer", "FaZe", "FailFish", "FallCry", "FallHalp", "FallWinning",
        "FamilyMan", "FeelsVi", "FeverFighter", "FlawlessVictory", "FootBall",
        "FootGoal", "FootYellow", "ForSigmar", "FrankerZ", "FreakinStinkin",
        "FutureMan", "GRASSLORD", "GayPride", "GenderFluidPride", "Getcamped",
        "GingerPower", "GivePLZ", "GlitchCat", "GlitchLit", "GlitchNRG",
        "GoatEmotey", "GoldPLZ", "GrammarKing", "HSCheers", "HSWP", "HarleyWink",
        "HassaanChop", "HeyGuys", "HolidayCookie", "HolidayLog",
        "HolidayPresent", "HolidaySanta", "HolidayTree", "HotPokket",
        "HungryPaimon", "ImTyping", "IntersexPride", "InuyoFace", "ItsBoshyTime",
        "JKanStyle", "Jebaited", "Jebasted", "JinxLUL", "JonCarnage", "KAPOW",
        "KEKHeim", "Kappa", "KappaClaus", "KappaPride", "KappaRoss",
        "KappaWealth", "Kappu", "Keepo", "KevinTurtle", "KingWorldCup", "Kippa",
        "KomodoHype", "KonCha", "Kreygasm", "LUL", "LaundryBasket", "Lechonk",
        "LesbianPride", "LionOfYara", "MVGame", "Mafiathon3", "Mau5", "MaxLOL",
        "McDZombieHamburglar", "MechaRobot", "MegaphoneZ", "MercyWing1",
        "MercyWing2", "MikeHogu", "MingLee", "ModLove", "MorphinTime",
        "MrDestructoid", "MyAvatar", "NRWylder", "NewRecord", "NiceTry",
        "NinjaGrumpy", "NomNom", "NonbinaryPride", "NotATK", "NotLikeThis",
        "O.O", "O.o", "OSFrog", "O_O", "O_o", "OhMyDog", "OneHand", "OpieOP",
        "OptimizePrime", "PJSalt", "PJSugar", "PMSTwin", "PRChase", "PanicVis",
        "PansexualPride", "PartyHat", "PartyTime", "PeoplesChamp", "PermaSmug",
        "PewPewPew", "PicoMause", "PikaRamen", "PinkMercy", "PipeHype",
        "PixelBob", "PizzaTime", "PogBones", "PogChamp", "Poooound", "PopCorn",
        "PopGhost", "PopNemo", "PoroSad", "PotFriend", "PowerUpL", "PowerUpR",
        "PraiseIt", "PrimeMe", "PunOko", "PunchTrees", "R)", "R-)", "RaccAttack",
        "RalpherZ", "RedCoat", "ResidentSleeper", "RitzMitz", "RlyTho",
        "RuleFive", "RyuChamp", "SMOrc", "SSSsss", "SUBprise", "SUBtember",
        "SabaPing", "SeemsGood", "SeriousSloth", "ShadyLulu", "ShazBotstix",
        "Shush", "SingsMic", "SingsNote", "SmoocherZ", "SnakeInBox", "SoBayed",
        "SoonerLater", "Squid1", "Squid2", "Squid3", "Squid4", "StinkyCheese",
        "StinkyGlitch", "StoneLightning", "StrawBeary", "StreamerU",
        "SuperVinlin", "SwiftRage", "TBAngel", "TF2John", "TPFufun",
        "TPcrunchyroll", "TTours", "TWITH", "TakeNRG", "TearGlove", "TehePelo",
        "ThankEgg", "TheIlluminati", "TheRinger", "TheTarFu", "TheThing",
        "ThunBeast", "TinyFace", "TombRaid", "TooSpicy", "TransgenderPride",
        "TriHard", "TwitchConHYPE", "TwitchLit", "TwitchRPG", "TwitchSings",
        "TwitchUnity", "TwitchVotes", "UWot", "UnSane", "UncleNox", "VirtualHug",
        "VoHiYo", "VoteNay", "VoteYea", "WTRuck", "WeDidThat", "WholeWheat",
        "WhySoSerious", "WutFace", "YouDontSay", "YouWHY", "ZLANsup",
        "bleedPurple", "cmonBruh", "copyThis", "duDudu", "imGlitch", "mcaT",
        "panicBasket", "pastaThat", "riPepperonis", "twitchRaid", ";P", ";p",
        ";-)", ";-P", ";-p", "o.O", "o.o", "o_O", "o_o",
    )
)

_FALLBACK_STRIP = re.compile(r"[^0-9A-Za-z:()<>;\-_]")


def is_global_emote(token: str) -> bool:
    """Check whether a token is a global emote code (case-insensitive)."""
    return token.lower() in GLOBAL_EMOTES


def extract_emotes(text: str, spans: Sequence[EmoteSpan]) -> List[EmoteRef]:
    """
    Resolve platform emote spans against the message text.

    Span offsets are inclusive on both ends. A span pointing outside the
    text still yields an emote keyed by its id.

    Args:
        text: Raw message text.
        spans: Emote spans attached by the platform.

    Returns:
        List[EmoteRef]: One entry per span, in span order.
    """
    emotes: List[EmoteRef] = []
    for span in spans:
        code = text[span.start : span.end + 1].strip()
        if code:
            emotes.append(EmoteRef(code=code, id=span.id))
        elif span.id:
            emotes.append(EmoteRef(code=span.id, id=span.id))
    return emotes


def extract_fallback_emotes(text: str) -> List[EmoteRef]:
    """
    Detect global emotes by code when no spans were supplied.

    Each distinct code is reported once, in order of first appearance.
    """
    seen: dict[str, EmoteRef] = {}
    for segment in text.split():
        sanitized = _FALLBACK_STRIP.sub("", segment)
        if sanitized and sanitized.lower() in GLOBAL_EMOTES and sanitized not in seen:
            seen[sanitized] = EmoteRef(code=sanitized, id=None)
    return list(seen.values())


def merge_emotes(*groups: Iterable[EmoteRef]) -> List[EmoteRef]:
    """Merge emote lists, keeping the first occurrence of each lowercase code."""
    merged: dict[str, EmoteRef] = {}
    for group in groups:
        for emote in group:
            merged.setdefault(emote.code.lower(), emote)
    return list(merged.values())
