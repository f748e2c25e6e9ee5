"""Ordered element location strategies for the BDES map portal.

Each tuple below lists, in priority order, the ways one semantic element of
the portal has been found so far. The portal is a Dojo/Esri application
whose markup changes without notice, hence several alternatives per element.
"""

import re

from bdes_scraper.scrapers.base.locators import by_role, by_text, css, keyword_filter, label_filter


IDENTIFY_KEYWORDS = ("identify", "identification", "stethoscope", "mycustom")
PROCEDURES_LABEL = re.compile(r"proc[eéèêë]dures", re.IGNORECASE)

TERMS_CHECKBOX = (
    css("input[type=\"checkbox\"]:near(:text(\"J'ai lu\"))", name="checkbox near \"J'ai lu\""),
    css(".ui-dialog input[type=\"checkbox\"]", name="dialog checkbox"),
)

TERMS_ACCEPT = (
    css("button:has-text(\"Accepter\")"),
    css("span:has-text(\"Accepter\")"),
    by_role("button", re.compile(r"accepter", re.IGNORECASE)),
)

HELP_CLOSE = (
    css(".dijitDialogCloseIcon"),
    css("button[title*=\"Fermer\"]"),
    css(".ui-dialog-titlebar-close"),
)

ADDRESS_INPUT = (
    css("input[placeholder*=\"Adresse\" i]"),
    css("input[placeholder*=\"rue\" i]"),
    css("[class*=\"SpwGeolocalisationSearchInput\"] input[type=\"text\"]"),
    css("input[type=\"text\"]"),
)

SEARCH_ICON = (
    css("div.SpwGeolocalisationSearchInputButton"),
    css("[class*=\"SpwGeolocalisationSearchInputButton\"]"),
    css("[class*=\"SpwGeolocalisationSearchInput\"] button"),
    css("button:has([class*=\"search\"])"),
    css("input[placeholder*=\"Adresse\"] + div"),
    css("input[placeholder*=\"Adresse\"] ~ div"),
)

ADDRESS_SUGGESTION = (
    css(".dijitComboBoxMenu .dijitMenuItem:not(.dijitMenuPreviousButton):not(.dijitMenuNextButton)",
        name="combo box menu item"),
    css(".dijitComboBoxMenuPopup .dijitMenuItem", name="combo box popup item"),
    css("[role=\"option\"]"),
    css(".dijitMenuItem"),
    css(".dijitComboBoxMenu"),
)

MODAL_OVERLAY = (
    css(".ui-widget-overlay"),
    css(".dijitDialogUnderlay"),
)

OVERLAY_CLOSE = (
    css("button:has-text(\"Fermer\")"),
    css(".ui-dialog-titlebar-close"),
    css(".dijitDialogCloseIcon"),
)

IDENTIFY_TOOL = (
    css(".myCustomAdvancedIdentifyButton", name="advanced identify button"),
    css("[class*=\"myCustomAdvancedIdentify\"]", name="advanced identify class"),
    css("[class*=\"stethoscope\"]"),
    css("[class*=\"identify\"]"),
    css("button[title*=\"identification\" i]"),
    css("[aria-label*=\"identification\" i]"),
    css("button[title=\"Informations sur l'état des sols\"]", name="soil information button"),
)

# Toolbar buttons accepted only when their class/title/aria-label mention identification.
IDENTIFY_TOOLBAR_HEURISTIC = tuple(
    css(f"{toolbar} button, {toolbar} .dijitButton, {toolbar} [role=\"button\"]",
        name=f"{toolbar} keyword match", accept=keyword_filter(IDENTIFY_KEYWORDS))
    for toolbar in (".dijitToolbar", "[class*=\"toolbar\"]", "[class*=\"Toolbar\"]")
)

# Last resort: the identify control has historically been the 6th or 7th toolbar button.
IDENTIFY_TOOLBAR_POSITION = (
    css(".dijitToolbar button:nth-child(6)"),
    css(".dijitToolbar button:nth-child(7)"),
)

MAP_SURFACE = (
    css("#esri\\.Map_0_container", name="esri map container"),
    css(".esriMapContainer"),
    css(".leaflet-container"),
    css("[id*=\"map\"]"),
)

IDENTIFY_RESULTS = (
    css("table:has-text(\"Parcelles\")", name="parcel table"),
    by_text(re.compile(r"RÉSULTAT", re.IGNORECASE), name="results title"),
    by_text(re.compile(r"Parcelles", re.IGNORECASE), name="parcels title"),
)

PARCEL_TABLE = (
    css("table:has-text(\"Parcelles\")", name="parcel table"),
    css("[class*=\"result\"] table", name="results panel table"),
)

PARCEL_LINK = (
    css("a[href*=\"parcelle\"]"),
    css(".parcel-name"),
    css("[data-parcel]"),
    css("[title*=\"parcelle\" i]"),
)

PROCEDURES_TAB = (
    by_role("tab", PROCEDURES_LABEL, name="procedures tab role"),
    css("[role=\"tab\"]", name="tab label match", accept=label_filter("Procédures")),
    by_role("button", PROCEDURES_LABEL, name="procedures button role"),
    by_role("link", PROCEDURES_LABEL, name="procedures link role"),
    css("button, a, [class*=\"tab\"]", name="clickable label match", accept=label_filter("Procédures"),
        max_candidates=200),
    by_text(PROCEDURES_LABEL, name="procedures text"),
)

PROCEDURES_TABLE = (
    css("[role=\"tabpanel\"]:visible table", name="visible tab panel table"),
    css("table:has-text(\"Statut\")", name="table with status header"),
    css("[role=\"table\"]"),
    css("[role=\"grid\"]"),
    css("table"),
    css("[class*=\"table\"]"),
)
