from comp_analyzer.models.reference import ReferenceCompany


def _company(ticker: str, name: str, industry: str, sector: str, region: str, description: str) -> ReferenceCompany:
    return ReferenceCompany(
        ticker=ticker, name=name, industry=industry, sector=sector, region=region, description=description,
    )


# Built once at import; shared read-only across requests.
REFERENCE_COMPANIES: tuple[ReferenceCompany, ...] = (
    # B2B SaaS
    _company("CRM", "Salesforce", "B2B SaaS", "Technology", "North America", "Cloud Software Platform"),
    _company("NOW", "ServiceNow", "B2B SaaS", "Technology", "North America", "Enterprise Workflow Platform"),
    _company("MNDY", "Monday.com", "B2B SaaS", "Technology", "Global", "Work Management Platform"),
    _company("ASAN", "Asana", "B2B SaaS", "Technology", "North America", "Team Collaboration Software"),
    _company("SMAR", "Smartsheet", "B2B SaaS", "Technology", "North America", "Enterprise Work Management"),
    _company("TEAM", "Atlassian", "B2B SaaS", "Technology", "Global", "Team Collaboration and Productivity"),
    _company("ZM", "Zoom", "B2B SaaS", "Technology", "Global", "Video Communications Platform"),
    _company("DDOG", "Datadog", "B2B SaaS", "Technology", "North America", "Monitoring and Analytics Platform"),
    _company("SNOW", "Snowflake", "B2B SaaS", "Technology", "North America", "Cloud Data Platform"),
    _company("CRWD", "CrowdStrike", "B2B SaaS", "Technology", "North America", "Cybersecurity Platform"),
    _company("OKTA", "Okta", "B2B SaaS", "Technology", "North America", "Identity and Access Management"),
    _company("WDAY", "Workday", "B2B SaaS", "Technology", "North America", "Enterprise HR and Finance Software"),
    _company("VEEV", "Veeva Systems", "B2B SaaS", "Technology", "North America", "Life Sciences Cloud Software"),
    _company("HUBS", "HubSpot", "B2B SaaS", "Technology", "North America", "Marketing and Sales Platform"),
    _company("DOCU", "DocuSign", "B2B SaaS", "Technology", "North America", "Electronic Signature Platform"),
    # Manufacturing technology
    _company("PTC", "PTC", "Manufacturing Tech", "Technology", "North America", "Industrial IoT and CAD Software"),
    _company("ADSK", "Autodesk", "Manufacturing Tech", "Technology", "North America", "Design and Engineering Software"),
    _company("ANSS", "ANSYS", "Manufacturing Tech", "Technology", "North America", "Engineering Simulation Software"),
    _company("CDNS", "Cadence Design", "Manufacturing Tech", "Technology", "North America", "Electronic Design Automation"),
    _company("SNPS", "Synopsys", "Manufacturing Tech", "Technology", "North America", "Electronic Design Automation"),
    # E-commerce and marketplaces
    _company("SHOP", "Shopify", "E-commerce", "Technology", "North America", "E-commerce Platform"),
    _company("ETSY", "Etsy", "E-commerce", "Technology", "North America", "Online Marketplace"),
    _company("EBAY", "eBay", "E-commerce", "Technology", "Global", "Online Marketplace"),
    # Fintech
    _company("SQ", "Block (Square)", "Fintech", "Financial Services", "North America", "Payment Processing Platform"),
    _company("PYPL", "PayPal", "Fintech", "Financial Services", "Global", "Digital Payments Platform"),
    _company("ADYEN", "Adyen", "Fintech", "Financial Services", "Europe", "Payment Processing Platform"),
    # Healthcare technology
    _company("TDOC", "Teladoc", "Healthcare Tech", "Healthcare", "North America", "Telemedicine Platform"),
    # AI and data analytics
    _company("PLTR", "Palantir", "Data Analytics", "Technology", "North America", "Big Data Analytics Platform"),
    _company("AI", "C3.ai", "AI Software", "Technology", "North America", "Enterprise AI Software"),
)


def get_reference_universe() -> tuple[ReferenceCompany, ...]:
    return REFERENCE_COMPANIES
