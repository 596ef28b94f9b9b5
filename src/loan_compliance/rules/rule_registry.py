"""
Built-in rule registry.

EU consumer-credit, mortgage, data-protection and payment disclosures,
member-state rules, and Green Loan Principles checks, in evaluation order.
"""

from typing import Tuple

from ..models.enums import EUCountry, IssueSeverity
from .rule_engine import ComplianceRule, absence_rule, first_match_rule

GREEN_LOAN_CONTEXT = r"green loan|green bond|sustainable finance|eligible green"
# Some checks only consider explicit green-loan labelling.
GREEN_LOAN_LABEL = r"green loan|green bond|sustainable finance"
MORTGAGE_CONTEXT = r"mortgage|hypothek|hipoteca|immobilier|property loan"

CCD = "Consumer Credit Directive"
MCD = "Mortgage Credit Directive"
GLP = "Green Loan Principles"
LMA_GLP = "LMA GLP 2023"


REGULATORY_RULES: Tuple[ComplianceRule, ...] = (
    absence_rule(
        id="ccd-aprc-disclosure",
        name="APRC Disclosure (Annual Percentage Rate of Charge)",
        category=CCD,
        regulation="CCD Article 5",
        severity=IssueSeverity.ERROR,
        issue_category="CCD",
        message="Missing APRC (Annual Percentage Rate of Charge) disclosure required by Consumer Credit Directive",
        suggestion="Add a clear APRC disclosure statement showing the total cost of credit",
        present=r"APRC|APR|annual percentage rate|taux annuel",
        anchor=r"loan terms|interest rate|borrowing rate|section.*loan",
        fallback_label="Loan Terms section",
    ),
    absence_rule(
        id="ccd-total-amount",
        name="Total Amount Payable",
        category=CCD,
        regulation="CCD Article 5",
        severity=IssueSeverity.ERROR,
        issue_category="CCD",
        message="Missing total amount payable disclosure required by Consumer Credit Directive",
        suggestion="Include the total amount the consumer will pay including all interest and fees",
        present=r"total amount payable|total cost|montant total|Gesamtbetrag",
        anchor=r"loan amount|credit amount|principal amount",
        fallback_label="Loan Amount section",
    ),
    absence_rule(
        id="ccd-withdrawal-right",
        name="Right of Withdrawal (14 days)",
        category=CCD,
        regulation="CCD Article 14",
        severity=IssueSeverity.ERROR,
        issue_category="CCD",
        message="Missing 14-day right of withdrawal notice required by Consumer Credit Directive",
        suggestion="Add clear notice that the consumer has 14 days to withdraw from the credit agreement",
        present=r"right of withdrawal|withdrawal period|14 days|fourteen days|droit de rétractation|Widerrufsrecht",
    ),
    absence_rule(
        id="ccd-early-repayment",
        name="Early Repayment Rights",
        category=CCD,
        regulation="CCD Article 16",
        severity=IssueSeverity.WARNING,
        issue_category="CCD",
        message="Missing early repayment rights information required by Consumer Credit Directive",
        suggestion="Include terms for early repayment and any applicable compensation",
        present=r"early repayment|prepayment|remboursement anticipé|vorzeitige Rückzahlung",
    ),
    absence_rule(
        id="mcd-esis",
        name="ESIS Form (Mortgage)",
        category=MCD,
        regulation="MCD Article 14",
        severity=IssueSeverity.WARNING,
        issue_category="MCD",
        message="Mortgage document should reference ESIS (European Standardised Information Sheet)",
        suggestion="Reference the ESIS form that must be provided before contract signing",
        present=r"ESIS|European Standardised Information Sheet|pre-contractual information",
        requires=(MORTGAGE_CONTEXT,),
    ),
    absence_rule(
        id="mcd-reflection-period",
        name="Reflection Period (Mortgage)",
        category=MCD,
        regulation="MCD Article 14",
        severity=IssueSeverity.WARNING,
        issue_category="MCD",
        message="Mortgage document should mention reflection period under MCD",
        suggestion="Include information about the reflection period before signing",
        present=r"reflection period|cooling off|7 days|seven days",
        requires=(MORTGAGE_CONTEXT,),
    ),
    absence_rule(
        id="gdpr-data-processing",
        name="GDPR Data Processing Notice",
        category="GDPR",
        regulation="GDPR Article 13/14",
        severity=IssueSeverity.ERROR,
        issue_category="GDPR",
        message="Missing GDPR data processing notice",
        suggestion="Add clear explanation of how personal data will be processed and stored",
        present=r"data processing|personal data|GDPR|data protection|Datenschutz|protection des données",
    ),
    absence_rule(
        id="gdpr-consent",
        name="GDPR Consent Collection",
        category="GDPR",
        regulation="GDPR Article 7",
        severity=IssueSeverity.WARNING,
        issue_category="GDPR",
        message="Document should include explicit consent language for data processing",
        suggestion="Add consent checkbox or signature for data processing agreement",
        present=r"consent|agree to|I agree|Einwilligung|consentement",
    ),
    absence_rule(
        id="gdpr-data-rights",
        name="Data Subject Rights",
        category="GDPR",
        regulation="GDPR Articles 15-22",
        severity=IssueSeverity.INFO,
        issue_category="GDPR",
        message="Consider adding data subject rights information",
        suggestion="Include reference to access, rectification, and erasure rights",
        present=r"right to access|right to erasure|right to rectification|data subject rights|Betroffenenrechte",
    ),
    absence_rule(
        id="psd2-payment-info",
        name="Payment Services Information",
        category="PSD2",
        regulation="PSD2 Article 44",
        severity=IssueSeverity.INFO,
        issue_category="PSD2",
        message="Payment information should be clearly specified",
        suggestion="Add clear payment schedule, methods, and due dates",
        present=r"payment terms|payment schedule|due date|fällig",
        requires=(r"payment|direct debit|bank transfer|SEPA",),
    ),
    absence_rule(
        id="signature-block",
        name="Signature Block Present",
        category="General",
        regulation="Contract Law",
        severity=IssueSeverity.ERROR,
        issue_category="General",
        message="Document missing signature block",
        suggestion="Add signature lines for all parties to the agreement",
        present=r"signature|sign here|unterschrift|firma|signed by",
    ),
    absence_rule(
        id="date-field",
        name="Date Field Present",
        category="General",
        regulation="Contract Law",
        severity=IssueSeverity.WARNING,
        issue_category="General",
        message="Document may be missing an effective date field",
        suggestion="Include effective date of the agreement",
        present=r"date:|effective date|dated|datum|fecha",
    ),
    absence_rule(
        id="borrower-info",
        name="Borrower Information",
        category="General",
        regulation="Contract Law",
        severity=IssueSeverity.ERROR,
        issue_category="General",
        message="Document missing borrower identification",
        suggestion="Include borrower name and identifying information",
        present=r"borrower|applicant|debtor|Kreditnehmer|emprunteur|prestatario",
    ),
    absence_rule(
        id="loan-amount",
        name="Credit Amount Disclosure",
        category=CCD,
        regulation="CCD Article 5",
        severity=IssueSeverity.ERROR,
        issue_category="CCD",
        message="Credit amount not clearly disclosed",
        suggestion="Clearly state the total credit amount in EUR",
        present=r"loan amount|credit amount|principal|amount financed|€[\d,]+|EUR",
    ),
    absence_rule(
        id="interest-rate",
        name="Interest Rate Disclosure",
        category=CCD,
        regulation="CCD Article 5",
        severity=IssueSeverity.ERROR,
        issue_category="CCD",
        message="Interest rate not clearly disclosed",
        suggestion="Include the borrowing rate and whether it is fixed or variable",
        present=r"interest rate|borrowing rate|%|percent|Zinssatz|taux d'intérêt",
    ),
    absence_rule(
        id="duration-disclosure",
        name="Credit Duration",
        category=CCD,
        regulation="CCD Article 5",
        severity=IssueSeverity.WARNING,
        issue_category="CCD",
        message="Credit duration/term not specified",
        suggestion="Include the total duration of the credit agreement",
        present=r"duration|term|months|years|Laufzeit|durée|duración",
    ),
    absence_rule(
        id="de-bgb-form",
        name="Written Form Requirement (Germany)",
        category="German Civil Code",
        regulation="BGB §492",
        severity=IssueSeverity.INFO,
        issue_category="BGB",
        message="German consumer credit agreements require written form under BGB §492",
        suggestion="Ensure document complies with German written form requirements",
        present=r"written form|schriftform|textform",
        requires=(r"BGB|German|Deutschland|Bundesrepublik",),
        country=EUCountry.GERMANY,
    ),
    absence_rule(
        id="fr-code-consommation",
        name="French Consumer Code Reference",
        category="French Consumer Code",
        regulation="Code de la Consommation",
        severity=IssueSeverity.INFO,
        issue_category="French Law",
        message="French credit agreements should reference Code de la Consommation",
        suggestion="Add reference to applicable French consumer protection articles",
        present=r"code de la consommation|L312|L313",
        requires=(r"France|français|République française",),
        country=EUCountry.FRANCE,
    ),
)


GREEN_LOAN_RULES: Tuple[ComplianceRule, ...] = (
    first_match_rule(
        id="gl-fossil-natural-gas",
        name="Fossil Fuel Reference - Natural Gas",
        category=GLP,
        regulation=LMA_GLP,
        severity=IssueSeverity.ERROR,
        issue_category="Greenwashing",
        message='Fossil fuel reference "{match}" incompatible with Green Loan classification',
        suggestion="Remove natural gas/fossil fuel references or reclassify as transition finance",
        pattern=r"natural gas|NGCC|combined cycle|gas-fired|gas turbine",
        requires=(GREEN_LOAN_CONTEXT,),
    ),
    first_match_rule(
        id="gl-fossil-lng",
        name="Fossil Fuel Reference - LNG",
        category=GLP,
        regulation=LMA_GLP,
        severity=IssueSeverity.ERROR,
        issue_category="Greenwashing",
        message='LNG infrastructure "{match}" not eligible for Green Loan financing',
        suggestion="LNG is a fossil fuel and should be removed from eligible green projects",
        pattern=r"\bLNG\b|liquefied natural gas|liquified natural gas",
        requires=(GREEN_LOAN_CONTEXT,),
    ),
    first_match_rule(
        id="gl-fossil-pipeline",
        name="Fossil Fuel Infrastructure - Pipeline",
        category=GLP,
        regulation=LMA_GLP,
        severity=IssueSeverity.ERROR,
        issue_category="Greenwashing",
        message='Fossil infrastructure "{match}" violates Green Loan Principles',
        suggestion="Pipeline and fossil fuel infrastructure must be excluded from green financing",
        pattern=r"pipeline infrastructure|gas pipeline|fossil fuel infrastructure|compression facilities",
        requires=(GREEN_LOAN_CONTEXT,),
    ),
    first_match_rule(
        id="gl-general-corporate",
        name="General Corporate Purposes",
        category=GLP,
        regulation=LMA_GLP,
        severity=IssueSeverity.ERROR,
        issue_category="Use of Proceeds",
        message='"{match}" not permitted under Green Loan Principles',
        suggestion="Green Loan proceeds must be exclusively allocated to Eligible Green Projects",
        pattern=r"general corporate purposes|working capital|operational expenses",
        requires=(GREEN_LOAN_CONTEXT,),
    ),
    first_match_rule(
        id="gl-transition-fuels",
        name="Transition Fuels Category",
        category=GLP,
        regulation=LMA_GLP,
        severity=IssueSeverity.ERROR,
        issue_category="Greenwashing",
        message='"{match}" category misrepresents fossil fuels as green',
        suggestion="Transition fuels require separate Transition Finance framework, not Green Loan",
        pattern=r"transition fuel|cleaner energy|lower-emission sources.*natural gas",
        requires=(GREEN_LOAN_CONTEXT,),
    ),
    first_match_rule(
        id="gl-weak-language-reasonable",
        name="Weak Binding Language - Reasonable Efforts",
        category="Contract Strength",
        regulation="Best Practice",
        severity=IssueSeverity.WARNING,
        issue_category="Contract Language",
        message='Weak binding language "{match}" reduces enforceability',
        suggestion='Replace with mandatory "shall" or "must" for green commitments',
        pattern=r"reasonable efforts|commercially reasonable|use reasonable",
    ),
    first_match_rule(
        id="gl-weak-language-may",
        name="Weak Binding Language - May/Consider",
        category="Contract Strength",
        regulation="Best Practice",
        severity=IssueSeverity.WARNING,
        issue_category="Contract Language",
        message='Optional language "{match}" weakens green commitment',
        suggestion="Make external review and verification mandatory, not optional",
        pattern=r"\bmay obtain\b|\bmay consider\b|at its discretion|consider engaging",
    ),
    first_match_rule(
        id="gl-optional-review",
        name="Optional External Review",
        category=GLP,
        regulation=LMA_GLP,
        severity=IssueSeverity.WARNING,
        issue_category="Verification",
        message="External review should be mandatory for Green Loan credibility",
        suggestion="Require annual external review by qualified ESG verifier (e.g., Sustainalytics)",
        pattern=r"external review.*discretion|may obtain.*external review",
        requires=(
            GREEN_LOAN_LABEL,
            r"external review.*discretion|may obtain.*external review|optional.*verification",
        ),
        unless=r"shall obtain.*external review|annual.*external review.*required|must.*external review",
    ),
    absence_rule(
        id="gl-missing-ifc",
        name="Missing IFC Performance Standards",
        category="Environmental Standards",
        regulation="IFC PS",
        severity=IssueSeverity.WARNING,
        issue_category="Standards",
        message="Missing reference to IFC Performance Standards for ESMS alignment",
        suggestion="Add requirement for ESMS aligned with IFC Performance Standards",
        present=r"IFC Performance Standards|IFC PS|International Finance Corporation",
        requires=(GREEN_LOAN_CONTEXT,),
    ),
    absence_rule(
        id="gl-missing-spo",
        name="Missing Second Party Opinion",
        category=GLP,
        regulation=LMA_GLP,
        severity=IssueSeverity.INFO,
        issue_category="Verification",
        message="Consider obtaining Second Party Opinion for Green Loan framework",
        suggestion="Engage recognized SPO provider (Sustainalytics, ISS ESG, CICERO) for credibility",
        present=r"second party opinion|SPO|Sustainalytics|ISS ESG|Moody.*ESG|CICERO",
        requires=(GREEN_LOAN_LABEL,),
    ),
    absence_rule(
        id="gl-missing-emissions-target",
        name="Missing Emission Reduction Targets",
        category="Environmental Impact",
        regulation="Best Practice",
        severity=IssueSeverity.INFO,
        issue_category="Impact Metrics",
        message="Document lacks specific emission reduction targets",
        suggestion="Add quantified GHG emissions avoided targets with clear methodology",
        present=r"tonnes CO2|GHG emissions avoided|emission reduction|carbon reduction|\d+%.*emission",
        requires=(GREEN_LOAN_CONTEXT,),
    ),
    first_match_rule(
        id="gl-vague-environmental",
        name="Vague Environmental Language",
        category=GLP,
        regulation="Best Practice",
        severity=IssueSeverity.INFO,
        issue_category="Specificity",
        message='Vague language "{match}" lacks quantifiable metrics',
        suggestion="Replace with specific, measurable environmental impact metrics",
        pattern=r"environmental benefits|environmental characteristics|generally consistent|believed to be accurate",
        requires=(GREEN_LOAN_LABEL,),
        unless=r"\d+.*MW|\d+.*MWh|\d+.*tonnes|\d+.*GWh",
    ),
    first_match_rule(
        id="gl-reporting-timeline",
        name="Extended Reporting Timeline",
        category=GLP,
        regulation="Best Practice",
        severity=IssueSeverity.WARNING,
        issue_category="Reporting",
        message='Extended reporting timeline "{match}" delays transparency',
        suggestion="Reduce to 120 days for timely green loan reporting",
        pattern=r"within 150 days|within 180 days|within 6 months",
    ),
    first_match_rule(
        id="gl-coal-reference",
        name="Coal Reference in Green Context",
        category=GLP,
        regulation=LMA_GLP,
        severity=IssueSeverity.ERROR,
        issue_category="Greenwashing",
        message='Coal reference "{match}" absolutely incompatible with Green Loan',
        suggestion="All coal references must be removed from Green Loan documentation",
        pattern=r"coal generation|coal-fired|coal facility|coal plant",
        requires=(GREEN_LOAN_CONTEXT,),
    ),
)


BUILTIN_RULES: Tuple[ComplianceRule, ...] = REGULATORY_RULES + GREEN_LOAN_RULES
