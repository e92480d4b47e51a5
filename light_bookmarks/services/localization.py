import re

from light_bookmarks.schemas.records import ImportMode, ImportResult

DEFAULT_LOCALE = "en"

BUNDLES: dict[str, dict[str, str]] = {
    "en": {
        "label.ungrouped": "Ungrouped",
        "message.bookmarkLimitReached": (
            "Cannot add bookmark: Maximum of {0} bookmarks per file reached. "
            "Please remove some bookmarks first."
        ),
        "message.invalidImportFile": "Invalid bookmark export file format",
        "message.importReplaced": (
            "Import completed! Imported {0} bookmarks and {1} collections."
        ),
        "message.importMerged": (
            "Import completed! Added {0} new bookmarks and {1} new collections."
        ),
        "message.wrappedToFirst": "Wrapped to first bookmark",
        "message.wrappedToLast": "Wrapped to last bookmark",
    },
    "de": {
        "label.ungrouped": "Nicht gruppiert",
        "message.bookmarkLimitReached": (
            "Lesezeichen kann nicht hinzugefügt werden: Maximal {0} Lesezeichen "
            "pro Datei erreicht. Bitte entfernen Sie zuerst einige Lesezeichen."
        ),
        "message.invalidImportFile": "Ungültiges Format der Exportdatei",
        "message.importReplaced": (
            "Import abgeschlossen! {0} Lesezeichen und {1} Sammlungen importiert."
        ),
        "message.importMerged": (
            "Import abgeschlossen! {0} neue Lesezeichen und {1} neue Sammlungen "
            "hinzugefügt."
        ),
        "message.wrappedToFirst": "Zum ersten Lesezeichen gesprungen",
        "message.wrappedToLast": "Zum letzten Lesezeichen gesprungen",
    },
}

_PLACEHOLDER = re.compile(r"\{(\d+)\}")


class Localizer:
    """Formats user-facing messages from a per-locale bundle.

    Unknown locales fall back to English, unknown keys render as the key
    itself, and ``{0}``-style placeholders without a matching argument are
    left in place.
    """

    def __init__(self, locale: str = DEFAULT_LOCALE) -> None:
        language = locale.split("-")[0].lower()
        self.locale = language if language in BUNDLES else DEFAULT_LOCALE
        self._bundle = BUNDLES[self.locale]

    def localize(self, key: str, *args: object) -> str:
        message = self._bundle.get(key, key)
        if not args:
            return message

        def replace(match: re.Match[str]) -> str:
            index = int(match.group(1))
            return str(args[index]) if index < len(args) else match.group(0)

        return _PLACEHOLDER.sub(replace, message)


def describe_import(
    result: ImportResult, mode: ImportMode, localizer: Localizer
) -> str:
    key = (
        "message.importReplaced"
        if ImportMode(mode) is ImportMode.REPLACE
        else "message.importMerged"
    )
    return localizer.localize(
        key, result.imported_bookmarks, result.imported_collections
    )
