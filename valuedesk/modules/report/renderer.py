"""
Report Renderer
===============

Turns a normalized and derived field map into a ``ReportDocument``: a fixed
sequence of A4 pages followed by one page per valid gallery image.

``render()`` is pure. It reads only the field map and the valuer identity from
settings; it performs no network or filesystem access.
"""

from typing import Any, List, Mapping, Optional, Tuple

from valuedesk.core.config import settings
from valuedesk.modules.report import legal_text
from valuedesk.modules.report.calculator import derive
from valuedesk.modules.report.document import (
    PAGE_KIND_CONTENT,
    PAGE_KIND_IMAGE,
    HeadingBlock,
    ImageBlock,
    ParagraphBlock,
    ReportDocument,
    ReportPage,
    SignatureBlock,
    TableBlock,
    TableRow,
)
from valuedesk.modules.report.field_schema import LINE_ITEMS
from valuedesk.modules.report.formatters import format_date, to_display
from valuedesk.modules.report.images import collect_gallery
from valuedesk.modules.report.normalizer import normalize
from valuedesk.modules.report.resolver import NA, is_present


REPORT_TITLE = "VALUATION REPORT (IN RESPECT OF FLAT)"
GALLERY_TITLE = "PROPERTY AND LOCATION IMAGES"
NIL = "Nil"

FORM_WIDTHS = (0.07, 0.48, 0.45)
VALUATION_HEADER = (
    "Sr. No",
    "Description",
    "Qty. Sq. ft.",
    "Rate per Unit Sq. ft.",
    "Estimated / Present Value (₹)",
)
VALUATION_WIDTHS = (0.08, 0.40, 0.14, 0.16, 0.22)
FURTHER_INFO_HEADER = ("S. No.", "Particulars", "Valuer Comment")
FURTHER_INFO_WIDTHS = (0.08, 0.42, 0.50)


def _row(item: str, label: str, *values: str) -> TableRow:
    return TableRow(item=item, label=label, values=tuple(values))


def _form_table(*rows: TableRow) -> TableBlock:
    return TableBlock(rows=tuple(rows), widths=FORM_WIDTHS)


class ReportRenderer:
    """
    Builds the valuation report page by page.

    One instance per render; ``fields`` is the derived field map.
    """

    def __init__(self, fields: Mapping[str, Any]):
        self.fields = fields

    # Cell helpers

    def value(self, name: str) -> str:
        """Cell text for a field; unresolved fields print as NA"""
        return to_display(self.fields.get(name, NA), default=NA)

    def date(self, name: str) -> str:
        return to_display(format_date(self.fields.get(name, NA)), default=NA)

    def line_item(self, name: str) -> str:
        """Valuation table cells print Nil instead of NA"""
        raw = self.fields.get(name)
        return to_display(raw, default=NIL) if is_present(raw) else NIL

    def rupees(self, name: str) -> str:
        return f"₹ {self.value(name)}/-"

    def amount_with_words(self, value_field: str, words_field: str) -> str:
        """Rs. X /- (words), or NA when the amount is missing"""
        if not is_present(self.fields.get(value_field)):
            return NA
        text = f"Rs. {self.value(value_field)} /-"
        if is_present(self.fields.get(words_field)):
            text += f" ({self.value(words_field)})"
        return text

    def signature(self, with_place: bool = False) -> SignatureBlock:
        left = ()
        if with_place:
            left = (
                f"Date: {self.date('valuationMadeDate')}",
                f"Place: {self.value('valuationPlace')}",
            )
        return SignatureBlock(
            lines=(
                settings.VALUER_NAME,
                "Signature of Approved Valuer",
                settings.VALUER_DESIGNATION,
                settings.VALUER_REGISTRATION_NO,
            ),
            left_lines=left,
        )

    # Pages

    def page_general(self) -> Tuple:
        return (
            HeadingBlock(REPORT_TITLE, level=1, align="center"),
            HeadingBlock("I. GENERAL", level=2),
            _form_table(
                _row("1", "Purpose of valuation", self.value("valuationPurpose")),
                _row(
                    "2",
                    "a. Date of Inspection\nb. Date of Valuation",
                    f": {self.date('inspectionDate')}\n: {self.date('valuationMadeDate')}",
                ),
                _row("3", "List of documents produced for perusal", self.value("listOfDocumentsProduced")),
                _row(
                    "4",
                    "Name of the owner(s) and his / their address (with share of each owner in "
                    "case of joint ownership) (As per Agreement for Sale)",
                    self.value("ownerNameAddress"),
                ),
                _row(
                    "5",
                    "Brief description of the property, Total Lease period & remaining period "
                    "(if Leasehold)",
                    self.value("briefDescriptionProperty"),
                ),
            ),
        )

    def page_location(self) -> Tuple:
        return (
            _form_table(
                _row("6", "Location of the property", "-"),
                _row("", "a. Plot No./Survey No.", self.value("plotNo")),
                _row("", "b. Door No.", self.value("doorNo")),
                _row("", "c. T.S. No./Village", self.value("tsNoVillage")),
                _row("", "d. Ward / Taluka", self.value("wardTaluka")),
                _row("", "e. Mandal / District", self.value("mandalDistrict")),
                _row("", "f. Date of issue and validity of layout of approved map/plan",
                     self.date("layoutIssueDate")),
                _row("", "g. Approved map/plan issuing authority", self.value("approvedMapAuthority")),
                _row("", "h. Whether genuineness or authenticity of approved map/plan is verified",
                     self.value("mapVerified")),
                _row("", "i. Any other comments by our empanelled valuer on authentic of approved map",
                     self.value("valuersComments")),
                _row("7", "Postal Address of the property", self.value("postalAddress")),
                _row("8", "City / Town\nResidential/Commercial/Industrial area",
                     f"{self.value('cityTown')}\n{self.value('areaTypes')}"),
                _row("9", "Classification of the area\ni) High/Middle/Poor\nii) Metro/Urban/Semi Urban/Rural",
                     f"{self.value('areaClassification')}\n{self.value('urbanType')}"),
                _row("10", "Coming under Corporation/Unit/Village Panchayat/Municipality",
                     self.value("jurisdictionType")),
                _row("11", "Whether covered under any State/ Central Govt. enactments (e.g. Urban "
                           "Land Ceiling Act) or notified under agency area/scheduled",
                     self.value("enactmentCovered")),
                _row("12 a", "Boundaries of the property (Plot)\nA) As per Agreement",
                     self._boundaries("boundariesPlot", "Deed")),
            ),
        )

    def _boundaries(self, prefix: str, suffix: str) -> str:
        return "\n".join(
            f"{side}: {self.value(f'{prefix}{side}{suffix}')}"
            for side in ("North", "South", "East", "West")
        )

    def page_boundaries(self) -> Tuple:
        return (
            _form_table(
                _row("", "B) Actual", self._boundaries("boundariesPlot", "Actual")),
                _row("12 b", "Boundaries of the property (Flat)\nA) As per Agreement",
                     self._boundaries("boundariesShop", "Deed")),
                _row("", "B) Actual", self._boundaries("boundariesShop", "Actual")),
                _row("13", "Dimensions of the property",
                     f"A) As per Documents {self.value('dimensionsDeed')}\n"
                     f"B) As per Actuals {self.value('dimensionsActual')}"),
                _row("14", "Extent of the Site", self.value("extentUnit")),
                _row("15", "Extent of the Site considered for valuation", self.value("extentSiteValuation")),
                _row("16", "Latitude, longitude & Co-ordinates of Flat", self.value("latitudeLongitude")),
                _row("17", "Whether occupied by the owner/tenant? If occupied by tenant, since how "
                           "long? Rent received per month", self.value("rentReceivedPerMonth")),
            ),
            HeadingBlock("II. APARTMENT / BUILDING", level=2),
            _form_table(
                _row("1", "Nature of the apartment", self.value("apartmentNature")),
                _row(
                    "2",
                    "Location\nC.T.S. No.\nBlock No.\nWard No.\nVillage/ Municipality/ Corporation\n"
                    "Door No. / Street or Road\nPin Code",
                    "\n".join((
                        self.value("apartmentLocation"),
                        self.value("apartmentCTSNo"),
                        self.value("apartmentBlockNo"),
                        self.value("apartmentWardNo"),
                        self.value("apartmentMunicipality"),
                        self.value("apartmentDoorNoStreetRoad"),
                        self.value("apartmentPinCode"),
                    )),
                ),
            ),
        )

    def page_building(self) -> Tuple:
        facilities = (
            ("Lift", "facilityLift"),
            ("Protected water supply", "facilityWater"),
            ("Underground Sewerage", "facilitySump"),
            ("Car parking (Open /Covered)", "facilityParking"),
            ("Around compound wall", "facilityCompoundWall"),
            ("Pavement around the building", "facilityPavement"),
            ("Any others facility", "facilityOthers"),
        )
        specifications = (
            ("Roof", "roofUnit"),
            ("Flooring", "flooringUnit"),
            ("Doors & Windows", "doorsUnit"),
            ("Bath / WC", "unitBathAndWC"),
            ("Electrical wiring", "unitElectricalWiring"),
            ("Fittings", "fittingsUnit"),
            ("Finishing", "finishingUnit"),
        )
        return (
            _form_table(
                _row("3", "Description of the Locality (Residential / Commercial / Mixed)",
                     self.value("localityDescription")),
                _row("4", "Year of Construction", self.value("yearConstruction")),
                _row("5", "Number of floors", self.value("numberOfFloors")),
                _row("6", "Type of structure", self.value("structureType")),
                _row("7", "Number of dwelling unit in the building", self.value("numberOfDwellingUnits")),
                _row("8", "Quality of construction", self.value("qualityConstruction")),
                _row("9", "Appearance of the Building", self.value("buildingAppearance")),
                _row("10", "Maintenance of the Building", self.value("buildingMaintenance")),
                _row("11", "Facilities available", ""),
                *(_row("", f"- {label}", self.value(name)) for label, name in facilities),
            ),
            HeadingBlock("III. FLAT", level=2),
            _form_table(
                _row("1", "The floor in which the Unit is situated", self.value("floorUnit")),
                _row("2", "Door Number of the Flat", self.value("doorNoUnit")),
                _row("3", "Specifications of the Flat", self.value("unitSpecification")),
                *(_row("", label, self.value(name)) for label, name in specifications),
            ),
        )

    def page_flat(self) -> Tuple:
        return (
            _form_table(
                _row("4", "Flat Tax\nAssessment No.\nTax Amount\nIn the Name of",
                     "\n".join(("-", self.value("assessmentNo"), self.value("taxAmount"),
                                self.value("taxPaidName")))),
                _row("5", "Electricity service connection number\nMeter card is in the name of",
                     f"{self.value('electricityServiceNo')}\n{self.value('meterCardName')}"),
                _row("6", "How is the maintenance of the Flat ?", self.value("unitMaintenance")),
                _row("7", "Agreement for Sale executed in the name of",
                     self._agreement_holder()),
                _row("8", "What is the undivided area of the land as per sale deed ?",
                     self.value("undividedLandArea")),
                _row("9", "What is the Plinth Area of the Flat?", self.value("plinthArea")),
                _row("10", "What is the floor space index?", self.value("floorSpaceIndex")),
                _row("11", "What is the Carpet area of the Flat?", self.value("carpetArea")),
                _row("12", "Is it Posh/ I Class / Medium/ Ordinary?", self.value("unitClassification")),
                _row("13", "Is it being used for residential or commercial?",
                     self.value("residentialOrCommercial")),
                _row("14", "It is owner occupied or tenanted", self.value("ownerOccupiedOrLetOut")),
                _row("15", "If tenanted, what is the monthly rent", self.value("monthlyRent")),
            ),
            HeadingBlock("IV. MARKETABILITY", level=2),
            _form_table(
                _row("1.", "How is the marketability?", self.value("marketability")),
                _row("2.", "What are the factors favoring for an extra potential value?",
                     self.value("favoringFactors")),
                _row("3.", "Any negative factors observed which affect", self.value("negativeFactors")),
            ),
        )

    def _agreement_holder(self) -> str:
        owner = self.fields.get("ownerNameAddress")
        if is_present(owner):
            return to_display(owner)
        return self.value("agreementForSale")

    def page_rates(self) -> Tuple:
        return (
            HeadingBlock("V. RATE", level=2),
            _form_table(
                _row("1", "After analyzing the comparable sale instances, what is the composite "
                          "rate for a similar Flat with same specifications in the adjoining "
                          "locality? (Along with details/reference of at least two latest "
                          "deals/transactions with respect to adjacent properties in the area)",
                     self.value("comparableRate")),
                _row("2", "Assuming it is a new construction What is the adopted basic composite "
                          "Rate of the Building under valuation after Comparing with the "
                          "specifications and other factors with the Building under Comparison "
                          "(Give details)",
                     self.value("adoptedBasicCompositeRate")),
                _row("3", "Break up for the above Rate\nBuilding + Services\nLand + Other",
                     f"-\n{self.value('buildingServicesRate')}\n{self.value('landOthersRate')}"),
                _row("4", "Guideline rate obtained from the Registrar's office (an evidence "
                          "thereof to be enclosed)", self.value("guidelineRate")),
            ),
            HeadingBlock("VI. Composite rate adopted after depreciation", level=2),
            _form_table(
                _row("a)", "Depreciated Building Rate", self.value("depreciatedBuildingRate")),
                _row("", "Replacement cost of Flat with services (V(3)(i))",
                     self.value("replacementCostServices")),
                _row("", "Age of the Building", f"{self.value('buildingAge')} Years"),
                _row("", "Future Life of the building estimated", f"{self.value('buildingLife')} years"),
                _row("", "Depreciation percentage assuming the salvage value as 10%",
                     f"{self.value('depreciationPercentage')} %"),
                _row("", "Depreciated Rate of the building", f"{self.value('depreciatedRatio')} %"),
                _row("b)", "Total composite rate arrived for valuation", ""),
                _row("", "Depreciated Building rate VI (a)", self.value("depreciatedBuildingRate")),
                _row("", "Rate for land & others [V (3) (ii)]", self.value("landOthersRate")),
                TableRow("", "Total Composite rate", (self.value("totalCompositeRate"),), emphasis=True),
            ),
        )

    def page_valuation(self) -> Tuple:
        rows = []
        for index, (name, description) in enumerate(LINE_ITEMS, start=1):
            rows.append(_row(
                f"{index}.",
                description,
                self.line_item(f"{name}Qty"),
                f"₹ {self.line_item(f'{name}Rate')}/-",
                f"₹ {self.line_item(name)}/-",
            ))
        rows.append(TableRow("", "TOTAL AMOUNT", ("", "", self.rupees("totalValuationItems")), True))
        rows.append(TableRow("", "Say", ("", "", f"₹ {self._say_value()}/-"), True))

        value_rows = (
            _row("", "Fair Market Value", self.amount_with_words("fairMarketValue", "fairMarketValueWords")),
            _row("", "Realizable Value", self.amount_with_words("realisableValue", "realisableValueWords")),
            _row("", "Distress Value", self.amount_with_words("distressValue", "distressValueWords")),
            _row("", "Agreement Value / Circle Rate", self._agreement_or_circle_rate()),
            _row("", "Insurance Value", self.amount_with_words("insurableValue", "insurableValueWords")),
        )
        return (
            HeadingBlock("C. VALUATION DETAILS", level=2),
            TableBlock(rows=tuple(rows), header=VALUATION_HEADER, widths=VALUATION_WIDTHS),
            HeadingBlock("VALUE OF FLAT", level=2),
            TableBlock(rows=value_rows, widths=(0.05, 0.35, 0.60)),
        )

    def _say_value(self) -> str:
        if is_present(self.fields.get("fairMarketValue")):
            return self.value("fairMarketValue")
        return self.value("totalValueSay")

    def _agreement_or_circle_rate(self) -> str:
        if is_present(self.fields.get("agreementValue")):
            return self.amount_with_words("agreementValue", "agreementValueWords")
        return self.amount_with_words("valueCircleRate", "valueCircleRateWords")

    def _words_suffix(self, words_field: str) -> str:
        words = self.fields.get(words_field)
        return f" ({to_display(words)})" if is_present(words) else ""

    def page_conclusion(self) -> Tuple:
        return (
            ParagraphBlock(
                "As a result of my appraisal and analysis, it is my considered opinion that the "
                "present fair market value of the above property in the prevailing condition "
                f"with aforesaid specifications is ₹ {self.value('fairMarketValue')} /-"
                f"{self._words_suffix('fairMarketValueWords')} of the above property."
            ),
            ParagraphBlock(
                f"The realizable value is ₹ {self.value('realisableValue')}/-"
                f"{self._words_suffix('realisableValueWords')} and the distress value is "
                f"₹ {self.value('distressValue')}/-{self._words_suffix('distressValueWords')}."
            ),
            ParagraphBlock(f"Place: {self.value('valuationPlace')}"),
            ParagraphBlock(f"Date: {self.date('valuationMadeDate')}"),
            self.signature(),
        )

    def page_declaration(self) -> Tuple:
        context = {
            "valuation_date": self.date("valuationMadeDate"),
            "inspection_date": self.date("inspectionDate"),
        }
        items = tuple(
            _row(f"{chr(ord('a') + i)})", text.format(**context))
            for i, text in enumerate(legal_text.DECLARATION_ITEMS)
        )
        return (
            HeadingBlock("ANNEXURE-II", level=2, align="center"),
            HeadingBlock("FORMAT-A", level=3, align="center"),
            HeadingBlock("DECLARATION FROM VALUERS", level=2, align="center"),
            ParagraphBlock("I hereby declare that-", bold=True),
            TableBlock(rows=items, widths=(0.06, 0.94)),
            self.signature(),
        )

    def page_further_information(self) -> Tuple:
        context = {
            "owner": self.value("ownerNameAddress"),
            "appointing_authority": settings.APPOINTING_AUTHORITY,
            "valuer_name": settings.VALUER_NAME,
            "inspection_date": self.date("inspectionDate"),
            "valuation_date": self.date("valuationMadeDate"),
        }
        rows = tuple(
            _row(str(i), particulars, comment.format(**context))
            for i, (particulars, comment) in enumerate(legal_text.FURTHER_INFORMATION, start=1)
        )
        return (
            ParagraphBlock("Further, I hereby provide the following information.", bold=True),
            TableBlock(rows=rows, header=FURTHER_INFO_HEADER, widths=FURTHER_INFO_WIDTHS),
            self.signature(with_place=True),
        )

    def _conduct_blocks(self, sections) -> List:
        blocks = []
        for heading, clauses in sections:
            blocks.append(ParagraphBlock(f"{heading}:", bold=True))
            blocks.append(TableBlock(
                rows=tuple(_row(f"{i}.", clause) for i, clause in enumerate(clauses, start=1)),
                widths=(0.06, 0.94),
            ))
        return blocks

    def page_conduct_one(self) -> Tuple:
        return (
            HeadingBlock("ANNEXURE - IV", level=2, align="center"),
            HeadingBlock("MODEL CODE OF CONDUCT FOR VALUERS", level=2, align="center"),
            ParagraphBlock(legal_text.CODE_OF_CONDUCT_INTRO),
            *self._conduct_blocks(legal_text.CODE_OF_CONDUCT_PART_ONE),
        )

    def page_conduct_two(self) -> Tuple:
        return (
            *self._conduct_blocks(legal_text.CODE_OF_CONDUCT_PART_TWO),
            SignatureBlock(
                lines=self.signature().lines,
                left_lines=(
                    f"Date: {self.date('valuationMadeDate')}",
                    f"Place: {settings.CODE_OF_CONDUCT_PLACE}",
                ),
            ),
        )

    def image_pages(self) -> List[Tuple]:
        gallery = collect_gallery(
            self.fields.get("propertyImages") or [],
            self.fields.get("locationImages") or [],
        )
        pages = []
        for position, image in enumerate(gallery):
            blocks = [ImageBlock(label=image.label, source=image.source, kind=image.kind)]
            if position == 0:
                blocks.insert(0, HeadingBlock(GALLERY_TITLE, level=2, align="center"))
            pages.append(tuple(blocks))
        return pages

    def render(self) -> ReportDocument:
        content = (
            self.page_general(),
            self.page_location(),
            self.page_boundaries(),
            self.page_building(),
            self.page_flat(),
            self.page_rates(),
            self.page_valuation(),
            self.page_conclusion(),
            self.page_declaration(),
            self.page_further_information(),
            self.page_conduct_one(),
            self.page_conduct_two(),
        )
        pages = [ReportPage(number=0, blocks=blocks, kind=PAGE_KIND_CONTENT) for blocks in content]
        pages.extend(
            ReportPage(number=0, blocks=blocks, kind=PAGE_KIND_IMAGE)
            for blocks in self.image_pages()
        )

        document = ReportDocument(
            title=REPORT_TITLE,
            pages=(),
            metadata={
                "uniqueId": self.value("uniqueId"),
                "clientName": self.value("clientName"),
                "bankName": self.value("bankName"),
                "formType": self.value("formType"),
            },
        )
        return document.with_pages(pages)


def render(fields: Mapping[str, Any]) -> ReportDocument:
    """Render a derived field map into the report document"""
    return ReportRenderer(fields).render()


def build_report(record: Optional[Mapping]) -> ReportDocument:
    """normalize -> derive -> render for a raw record"""
    return render(derive(normalize(record)))
