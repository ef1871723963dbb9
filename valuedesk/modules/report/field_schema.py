"""
Report Field Schema
===================

Static mapping from logical report fields to the places a valuation record may
hold them. Records are produced by several form versions over time, so one
logical attribute can live at the record root, inside one or more form
sections, or inside the finalized ``pdfDetails`` snapshot.

Every table here is ordered lowest to highest priority:

    root aliases  <  form sections (in SECTION_MAPPINGS order)  <  snapshot

Within one source, later names win over earlier ones. ``compile_schema()``
flattens the tables into a single ordered candidate list per logical field;
the resolver and the normalizer both consume that compiled form.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Tuple


SCHEMA_VERSION = 3

SNAPSHOT_SECTION = "pdfDetails"

# Image collections are carried through unchanged and never resolved
IMAGE_COLLECTIONS = ("propertyImages", "locationImages")

# Sub-keys used to turn an object-typed value into a single string
DESCRIPTIVE_KEYS = ("agreementForSaleExecutedName", "fullAddress")


# Valuation line items in table order: (field, description)
LINE_ITEMS: Tuple[Tuple[str, str], ...] = (
    ("presentValue", "Present value of Flat (Built up area)"),
    ("wardrobes", "Wardrobes"),
    ("showcases", "Show cases / Almirah"),
    ("kitchenArrangements", "Kitchen arrangements"),
    ("superfineFinish", "Superfine Finish"),
    ("interiorDecorations", "Interiors Decorations"),
    ("electricityDeposits", "Electricity Deposits / Electrical fitting etc."),
    ("collapsibleGates", "Extra Collapsible gates / grills works etc."),
    ("potentialValue", "Potential Value, if any"),
    ("otherItems", "Others"),
)

LINE_ITEM_FIELDS = tuple(name for name, _ in LINE_ITEMS)

# Value fields that get a "Rupees ... Only" companion when missing
VALUE_WORD_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("fairMarketValue", "fairMarketValueWords"),
    ("realisableValue", "realisableValueWords"),
    ("distressValue", "distressValueWords"),
    ("agreementValue", "agreementValueWords"),
    ("valueCircleRate", "valueCircleRateWords"),
    ("insurableValue", "insurableValueWords"),
)

DATE_FIELDS = frozenset({
    "inspectionDate",
    "valuationMadeDate",
    "layoutIssueDate",
    "valuationDate",
    "reportDate",
})


def _line_item_fields() -> Tuple[str, ...]:
    names = []
    for item in LINE_ITEM_FIELDS:
        names.extend((f"{item}Qty", f"{item}Rate", item))
    return tuple(names)


# Every logical field the report template reads
LOGICAL_FIELDS: Tuple[str, ...] = (
    # Identity
    "uniqueId", "clientName", "bankName", "city", "engineerName", "status",
    "formType", "mobileNumber", "address", "dsa", "notes",
    # I. General
    "branch", "valuationPurpose", "inspectionDate", "valuationMadeDate",
    "listOfDocumentsProduced", "agreementForSale", "commencementCertificate",
    "occupancyCertificate", "ownerNameAddress", "briefDescriptionProperty",
    # Location
    "plotNo", "doorNo", "tsNoVillage", "wardTaluka", "mandalDistrict",
    "layoutIssueDate", "approvedMapAuthority", "mapVerified", "valuersComments",
    "postalAddress", "cityTown", "residentialArea", "commercialArea",
    "industrialArea", "areaClassification", "urbanType", "jurisdictionType",
    "enactmentCovered",
    # Boundaries
    "boundariesPlotNorthDeed", "boundariesPlotSouthDeed",
    "boundariesPlotEastDeed", "boundariesPlotWestDeed",
    "boundariesPlotNorthActual", "boundariesPlotSouthActual",
    "boundariesPlotEastActual", "boundariesPlotWestActual",
    "boundariesShopNorthDeed", "boundariesShopSouthDeed",
    "boundariesShopEastDeed", "boundariesShopWestDeed",
    "boundariesShopNorthActual", "boundariesShopSouthActual",
    "boundariesShopEastActual", "boundariesShopWestActual",
    # Dimensions and occupancy
    "dimensionsDeed", "dimensionsActual", "extentUnit", "extentSiteValuation",
    "latitudeLongitude", "rentReceivedPerMonth",
    # II. Apartment / building
    "apartmentNature", "apartmentLocation", "apartmentCTSNo", "apartmentTSNo",
    "apartmentBlockNo", "apartmentWardNo", "apartmentMunicipality",
    "apartmentDoorNoStreetRoad", "apartmentPinCode", "localityDescription",
    "yearConstruction", "numberOfFloors", "structureType",
    "numberOfDwellingUnits", "qualityConstruction", "buildingAppearance",
    "buildingMaintenance",
    "facilityLift", "facilityWater", "facilitySump", "facilityParking",
    "facilityCompoundWall", "facilityPavement", "facilityOthers",
    # III. Flat
    "floorUnit", "doorNoUnit", "unitSpecification", "roofUnit", "flooringUnit",
    "doorsUnit", "windowsUnit", "unitBathAndWC", "unitElectricalWiring",
    "fittingsUnit", "finishingUnit", "assessmentNo", "taxAmount", "taxPaidName",
    "electricityServiceNo", "meterCardName", "unitMaintenance",
    "undividedLandArea", "plinthArea", "floorSpaceIndex", "carpetArea",
    "areaUsage", "unitClassification", "residentialOrCommercial",
    "ownerOccupiedOrLetOut", "monthlyRent",
    # IV. Marketability
    "marketability", "favoringFactors", "negativeFactors",
    # V / VI. Rates
    "comparableRate", "adoptedBasicCompositeRate", "buildingServicesRate",
    "landOthersRate", "guidelineRate", "depreciatedBuildingRate",
    "replacementCostServices", "buildingAge", "buildingLife",
    "depreciationPercentage", "depreciatedRatio", "totalCompositeRate",
    "rateForLandOther",
    # C. Valuation details
    *_line_item_fields(),
    "totalValuationItems", "totalValuationItemsWords", "totalValueSay",
    # Value of flat
    "fairMarketValue", "fairMarketValueWords", "realisableValue",
    "realisableValueWords", "distressValue", "distressValueWords",
    "agreementValue", "agreementValueWords", "valueCircleRate",
    "valueCircleRateWords", "insurableValue", "insurableValueWords",
    "saleDeedValue",
    # Signature
    "valuationPlace", "valuationDate", "valuersName", "reportDate",
)


# Root-level aliases, lowest to highest. The logical name itself is always
# appended as the highest-priority root alias.
ROOT_ALIASES: Dict[str, Tuple[str, ...]] = {
    "inspectionDate": ("dateOfInspection",),
    "valuationMadeDate": ("dateOfValuation", "dateOfValuationMade"),
    "agreementForSale": ("agreementSaleExecutedName",),
    "plotNo": ("plotSurveyNo",),
    "tsNoVillage": ("tpVillage",),
    "layoutIssueDate": ("layoutPlanIssueDate",),
    "mapVerified": ("authenticityVerified",),
    "valuersComments": ("valuerCommentOnAuthenticity",),
    "urbanType": ("urbanClassification",),
    "jurisdictionType": ("governmentType",),
    "enactmentCovered": ("govtEnactmentsCovered",),
    "boundariesPlotNorthDeed": ("boundariesPlotNorth",),
    "boundariesPlotSouthDeed": ("boundariesPlotSouth",),
    "boundariesPlotEastDeed": ("boundariesPlotEast",),
    "boundariesPlotWestDeed": ("boundariesPlotWest",),
    "boundariesShopNorthDeed": ("boundariesShopNorth",),
    "boundariesShopSouthDeed": ("boundariesShopSouth",),
    "boundariesShopEastDeed": ("boundariesShopEast",),
    "boundariesShopWestDeed": ("boundariesShopWest",),
    "extentUnit": ("extentOfUnit", "extent"),
    "extentSiteValuation": ("extentOfSiteValuation",),
    "latitudeLongitude": ("coordinates",),
    "apartmentLocation": ("location",),
    "apartmentCTSNo": ("cTSNo", "ctsNo"),
    "apartmentTSNo": ("apartmentCTSNo", "plotSurveyNo", "tSNo", "ctsNo", "tsNo"),
    "apartmentBlockNo": ("blockNumber", "block", "blockNo"),
    "apartmentWardNo": ("wardNumber", "ward", "wardNo"),
    "apartmentMunicipality": (
        "tsVillage", "villageOrMunicipality", "municipality", "village",
        "apartmentVillageMunicipalityCounty",
    ),
    "apartmentDoorNoStreetRoad": (
        "roadName", "doorNumber", "street", "streetRoad", "doorNo",
        "doorNoStreetRoadPinCode", "apartmentDoorNoStreetRoadPinCode",
        "apartmentDoorNoPin",
    ),
    "apartmentPinCode": ("pinCode",),
    "localityDescription": ("descriptionOfLocalityResidentialCommercialMixed",),
    "yearConstruction": ("yearOfConstruction",),
    "structureType": ("typeOfStructure",),
    "numberOfDwellingUnits": ("numberOfDwellingUnitsInBuilding", "dwellingUnits"),
    "qualityConstruction": ("qualityOfConstruction",),
    "buildingAppearance": ("appearanceOfBuilding",),
    "buildingMaintenance": ("maintenanceOfBuilding",),
    "facilityLift": ("liftAvailable",),
    "facilityWater": ("protectedWaterSupply",),
    "facilitySump": ("undergroundSewerage",),
    "facilityParking": ("carParkingOpenCovered", "carParkingType"),
    "facilityCompoundWall": ("isCompoundWallExisting", "compoundWallExisting", "compoundWall"),
    "facilityPavement": ("isPavementLaidAroundBuilding", "pavementAroundBuilding", "pavement"),
    "facilityOthers": ("othersFacility",),
    "floorUnit": ("unitFloor", "floorLocation"),
    "doorNoUnit": ("unitDoorNo",),
    "unitSpecification": ("specification",),
    "roofUnit": ("unitRoof", "roof"),
    "flooringUnit": ("unitFlooring", "flooring"),
    "doorsUnit": ("unitDoors", "doors"),
    "windowsUnit": ("unitWindows", "windows"),
    "unitBathAndWC": ("bathAndWC",),
    "unitElectricalWiring": ("electricalWiring",),
    "fittingsUnit": ("unitFittings", "fittings"),
    "finishingUnit": ("unitFinishing", "finishing"),
    "electricityServiceNo": ("electricityServiceConnectionNo", "electricityConnectionNo"),
    "unitMaintenance": ("unitMaintenanceStatus",),
    "undividedLandArea": ("undividedArea", "undividedAreaLand", "undividedLandAreaSaleDeed"),
    "carpetArea": ("areaUsage", "carpetAreaFlat"),
    "unitClassification": ("classificationPosh",),
    "residentialOrCommercial": ("classificationUsage",),
    "ownerOccupiedOrLetOut": ("classificationOwnership", "ownerOccupancyStatus"),
    "comparableRate": ("marketabilityDescription",),
    "adoptedBasicCompositeRate": ("smallFlatDescription",),
    "guidelineRate": ("rateAdjustments",),
    "depreciatedRatio": ("depreciationStorage", "deprecatedRatio"),
    "rateForLandOther": ("rateLandOther",),
    "totalValuationItems": ("totalEstimatedValue",),
    "realisableValue": ("realizableValue",),
    "valuationPlace": ("place",),
    "valuationDate": ("signatureDate",),
    "valuersName": ("signerName",),
    "presentValue": ("valuationItem1",),
}


@dataclass(frozen=True)
class SectionMapping:
    """
    One form section and the flat fields it feeds.

    ``fields`` maps a logical field to the section keys that may hold it,
    lowest to highest priority.
    """
    path: str
    fields: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)


# Form sections in merge order; a later section overrides an earlier one.
SECTION_MAPPINGS: Tuple[SectionMapping, ...] = (
    SectionMapping("documentInformation", {
        "branch": ("branch",),
        "inspectionDate": ("dateOfInspection",),
        "valuationMadeDate": ("dateOfValuation",),
        "valuationPurpose": ("valuationPurpose",),
    }),
    SectionMapping("ownerDetails", {
        "ownerNameAddress": ("ownerNameAddress",),
        "briefDescriptionProperty": ("propertyDescription",),
    }),
    SectionMapping("cityAreaType", {
        "cityTown": ("cityTown",),
    }),
    SectionMapping("areaClassification", {
        "areaClassification": ("areaClassification",),
        "urbanType": ("areaType",),
        "jurisdictionType": ("govGovernance",),
        "enactmentCovered": ("stateGovernmentEnactments",),
    }),
    SectionMapping("locationOfProperty", {
        "plotNo": ("plotSurveyNo",),
        "doorNo": ("doorNo",),
        "tsNoVillage": ("tsVillage",),
        "wardTaluka": ("wardTaluka",),
        "mandalDistrict": ("mandalDistrict",),
        "layoutIssueDate": ("dateLayoutIssueValidity",),
        "approvedMapAuthority": ("approvedMapIssuingAuthority",),
        "postalAddress": ("postalAddress",),
        "residentialArea": ("residentialArea",),
        "commercialArea": ("commercialArea",),
        "industrialArea": ("industrialArea",),
        "areaClassification": ("areaClassification",),
    }),
    SectionMapping("propertyBoundaries.plotBoundaries", {
        "boundariesPlotNorthDeed": ("north",),
        "boundariesPlotSouthDeed": ("south",),
        "boundariesPlotEastDeed": ("east",),
        "boundariesPlotWestDeed": ("west",),
    }),
    SectionMapping("propertyDimensions", {
        "dimensionsDeed": ("dimensionsAsPerDeed",),
        "dimensionsActual": ("actualDimensions",),
        "extentUnit": ("extent",),
        "latitudeLongitude": ("latitudeLongitudeCoordinates",),
        "extentSiteValuation": ("extentSiteConsideredValuation",),
    }),
    SectionMapping("rateInfo", {
        "comparableRate": ("comparableRateSimilarUnit",),
        "adoptedBasicCompositeRate": ("adoptedBasicCompositeRate",),
        "buildingServicesRate": ("buildingServicesRate",),
        "landOthersRate": ("landOthersRate",),
    }),
    SectionMapping("rateValuation", {
        "comparableRate": ("comparableRateSimilarUnitPerSqft",),
        "adoptedBasicCompositeRate": ("adoptedBasicCompositeRatePerSqft",),
        "buildingServicesRate": ("buildingServicesRatePerSqft",),
        "landOthersRate": ("landOthersRatePerSqft",),
    }),
    SectionMapping("compositeRateDepreciation", {
        "depreciatedBuildingRate": ("depreciatedBuildingRatePerSqft",),
        "replacementCostServices": ("replacementCostUnitServicesPerSqft",),
        "buildingAge": ("ageOfBuildingYears",),
        "buildingLife": ("lifeOfBuildingEstimatedYears",),
        "depreciationPercentage": ("depreciationPercentageSalvage",),
        "depreciatedRatio": ("depreciatedRatioBuilding",),
        "totalCompositeRate": ("totalCompositeRatePerSqft",),
        "rateForLandOther": ("rateLandOtherV3IIPerSqft",),
        "guidelineRate": ("guidelineRatePerSqm",),
    }),
    SectionMapping("compositeRate", {
        "depreciatedBuildingRate": ("depreciatedBuildingRate",),
        "replacementCostServices": ("replacementCostUnitServices",),
        "buildingAge": ("ageOfBuilding",),
        "buildingLife": ("lifeOfBuildingEstimated",),
        "depreciationPercentage": ("depreciationPercentageSalvage",),
        "depreciatedRatio": ("depreciatedRatioBuilding",),
        "totalCompositeRate": ("totalCompositeRate",),
        "rateForLandOther": ("rateLandOtherV3II",),
        "guidelineRate": ("guidelineRateRegistrar",),
    }),
    SectionMapping("valuationResults", {
        "fairMarketValue": ("fairMarketValue",),
        "realisableValue": ("realizableValue",),
        "distressValue": ("distressValue",),
        "saleDeedValue": ("saleDeedValue",),
        "insurableValue": ("insurableValue",),
        "rentReceivedPerMonth": ("rentReceivedPerMonth",),
        "marketability": ("marketability",),
    }),
    SectionMapping("buildingConstruction", {
        "yearConstruction": ("yearOfConstruction",),
        "numberOfFloors": ("numberOfFloors",),
        "numberOfDwellingUnits": ("numberOfDwellingUnits",),
        "structureType": ("typeOfStructure",),
        "qualityConstruction": ("qualityOfConstruction",),
        "buildingAppearance": ("appearanceOfBuilding",),
        "buildingMaintenance": ("maintenanceOfBuilding",),
    }),
    SectionMapping("facilities", {
        "facilityLift": ("liftAvailable",),
        "facilityWater": ("protectedWaterSupply",),
        "facilitySump": ("undergroundSewerage",),
        "facilityParking": ("carParkingOpenCovered",),
        "facilityCompoundWall": ("isCompoundWallExisting",),
        "facilityPavement": ("isPavementLaidAroundBuilding",),
        "facilityOthers": ("othersFacility",),
    }),
    SectionMapping("electricityService", {
        "electricityServiceNo": ("electricityServiceConnectionNo",),
        "meterCardName": ("meterCardName",),
    }),
    SectionMapping("unitTax", {
        "assessmentNo": ("assessmentNo",),
        "taxPaidName": ("taxPaidName",),
        "taxAmount": ("taxAmount",),
    }),
    SectionMapping("unitMaintenance", {
        "unitMaintenance": ("unitMaintenanceStatus",),
    }),
    SectionMapping("unitSpecifications", {
        "floorUnit": ("floorLocation",),
        "doorNoUnit": ("doorNoUnit",),
        "roofUnit": ("roof",),
        "flooringUnit": ("flooring",),
        "doorsUnit": ("doors",),
        "windowsUnit": ("windows",),
        "fittingsUnit": ("fittings",),
        "finishingUnit": ("finishing",),
        "unitBathAndWC": ("bathAndWC",),
        "unitElectricalWiring": ("electricalWiring",),
        "unitSpecification": ("specification",),
    }),
    SectionMapping("unitAreaDetails", {
        "undividedLandArea": ("undividedLandArea", "undividedLandAreaSaleDeed"),
        "plinthArea": ("plinthArea", "plinthAreaUnit"),
        "carpetArea": ("carpetArea", "carpetAreaUnit"),
    }),
    SectionMapping("unitClassification", {
        "floorSpaceIndex": ("floorSpaceIndex",),
        "unitClassification": ("classification", "unitClassification"),
        "residentialOrCommercial": ("usageType", "residentialOrCommercial"),
        "ownerOccupiedOrLetOut": ("occupancyType", "ownerOccupiedOrLetOut"),
        "numberOfDwellingUnits": ("numberOfDwellingUnits",),
    }),
    SectionMapping("apartmentLocation", {
        "apartmentNature": ("apartmentNature",),
        "apartmentLocation": ("location", "apartmentLocation"),
        "apartmentCTSNo": ("cTSNo", "ctsNo", "apartmentCTSNo"),
        "apartmentTSNo": ("apartmentCTSNo", "plotSurveyNo", "tSNo", "ctsNo", "tsNo"),
        "apartmentBlockNo": ("apartmentBlockNo", "blockNumber", "block", "blockNo"),
        "apartmentWardNo": ("apartmentWardNo", "wardNumber", "ward", "wardNo"),
        "apartmentMunicipality": (
            "apartmentVillageMunicipalityCounty", "tsVillage", "municipality",
            "village", "villageOrMunicipality",
        ),
        "apartmentDoorNoStreetRoad": (
            "apartmentDoorNoStreetRoad", "roadName", "doorNumber", "street",
            "streetRoad", "doorNo", "doorNoStreetRoadPinCode",
        ),
        "apartmentPinCode": ("apartmentPinCode", "pinCode"),
    }),
    SectionMapping("monthlyRent", {
        "monthlyRent": ("ifRentedMonthlyRent",),
    }),
    SectionMapping("marketability", {
        "marketability": ("howIsMarketability",),
        "favoringFactors": ("factorsFavouringExtraPotential",),
        "negativeFactors": ("negativeFactorsAffectingValue",),
    }),
    SectionMapping("signatureReport", {
        "valuationPlace": ("place",),
        "valuationDate": ("signatureDate",),
        "valuersName": ("signerName",),
        "reportDate": ("reportDate",),
    }),
    SectionMapping("additionalFlatDetails", {
        "areaUsage": ("areaUsage",),
        "carpetArea": ("carpetAreaFlat",),
    }),
    SectionMapping("guidelineRate", {
        "guidelineRate": ("guidelineRatePerSqm",),
    }),
    SectionMapping("documentsProduced", {
        "agreementForSale": ("photocopyCopyAgreement",),
        "commencementCertificate": ("commencementCertificate",),
        "occupancyCertificate": ("occupancyCertificate",),
    }),
)


# Snapshot aliases, lowest to highest. The logical name itself is always
# appended as the highest-priority snapshot key.
SNAPSHOT_ALIASES: Dict[str, Tuple[str, ...]] = {
    "valuationPurpose": ("purposeOfValuation",),
    "inspectionDate": ("dateOfInspection",),
    "valuationMadeDate": ("dateOfValuationMade",),
    "agreementForSale": ("agreementSaleExecutedName",),
    "plotNo": ("plotSurveyNo",),
    "tsNoVillage": ("tpVillage",),
    "layoutIssueDate": ("layoutPlanIssueDate",),
    "mapVerified": ("authenticityVerified",),
    "valuersComments": ("valuerCommentOnAuthenticity",),
    "urbanType": ("urbanClassification",),
    "jurisdictionType": ("governmentType",),
    "enactmentCovered": ("govtEnactmentsCovered",),
    "apartmentMunicipality": ("apartmentVillageMunicipalityCounty",),
    "facilityLift": ("liftAvailable",),
    "facilityWater": ("protectedWaterSupply",),
    "facilitySump": ("undergroundSewerage",),
    "facilityParking": ("carParkingOpenCovered",),
    "facilityCompoundWall": ("isCompoundWallExisting",),
    "facilityPavement": ("isPavementLaidAroundBuilding",),
    "facilityOthers": ("othersFacility",),
    "floorUnit": ("unitFloor",),
    "doorNoUnit": ("unitDoorNo",),
    "roofUnit": ("unitRoof",),
    "flooringUnit": ("unitFlooring",),
    "doorsUnit": ("unitDoors",),
    "windowsUnit": ("unitWindows",),
    "fittingsUnit": ("unitFittings",),
    "finishingUnit": ("unitFinishing",),
    "electricityServiceNo": ("electricityServiceConnectionNo",),
    "undividedLandArea": ("undividedAreaLand",),
    "carpetArea": ("areaUsage", "carpetAreaFlat"),
    "unitClassification": ("classificationPosh",),
    "residentialOrCommercial": ("classificationUsage",),
    "ownerOccupiedOrLetOut": ("classificationOwnership", "ownerOccupancyStatus"),
    "rentReceivedPerMonth": ("monthlyRent",),
    "guidelineRate": ("guidelineRatePerSqm",),
    "depreciatedRatio": ("deprecatedRatio",),
    "realisableValue": ("realizableValue",),
    "valuationDate": ("valuationMadeDate",),
}


@dataclass(frozen=True)
class FieldSpec:
    """Compiled lookup plan for one logical field"""
    name: str
    candidates: Tuple[str, ...]  # dotted paths, lowest to highest priority
    is_date: bool = False


def root_candidates(name: str) -> Tuple[str, ...]:
    aliases = ROOT_ALIASES.get(name, ())
    return tuple(a for a in aliases if a != name) + (name,)


def snapshot_candidates(name: str) -> Tuple[str, ...]:
    aliases = SNAPSHOT_ALIASES.get(name, ())
    return tuple(a for a in aliases if a != name) + (name,)


def compile_field(name: str) -> FieldSpec:
    """Build the ordered candidate list for a single logical field"""
    candidates = list(root_candidates(name))
    for section in SECTION_MAPPINGS:
        for key in section.fields.get(name, ()):
            candidates.append(f"{section.path}.{key}")
    candidates.extend(f"{SNAPSHOT_SECTION}.{key}" for key in snapshot_candidates(name))
    return FieldSpec(name=name, candidates=tuple(candidates), is_date=name in DATE_FIELDS)


def compile_schema() -> Dict[str, FieldSpec]:
    """Compile every logical field once"""
    return {name: compile_field(name) for name in LOGICAL_FIELDS}


# Compiled once at import
FIELD_SCHEMA: Dict[str, FieldSpec] = compile_schema()


def get_field_spec(name: str) -> FieldSpec:
    """
    Look up the compiled spec for a logical field.

    Names outside the schema fall back to the root key of the same name and
    the snapshot key of the same name.
    """
    spec = FIELD_SCHEMA.get(name)
    if spec is None:
        spec = FieldSpec(
            name=name,
            candidates=(name, f"{SNAPSHOT_SECTION}.{name}"),
            is_date=name in DATE_FIELDS,
        )
    return spec
