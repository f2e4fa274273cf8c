"""Prompt templates for product enrichment.

Keeping prompts in a central location makes it easier to iterate on
their content and ensure consistency between the enrichment client and
its tests.
"""

from __future__ import annotations

from textwrap import dedent
from typing import Optional


def get_enrichment_prompt(
    description: str,
    merchant: Optional[str],
    existing_brand: Optional[str] = None,
    existing_product_code: Optional[str] = None,
) -> str:
    """Return the prompt asking the model for brand, category and product details.

    Missing context is rendered as ``"none"`` so the model can tell an
    absent brand from one literally called "unknown".
    """
    header = dedent(
        """
        Analyze this product information and extract/standardize the brand, category and product details:

        Product Description: "{description}"
        Merchant: "{merchant}"
        Existing Brand: "{existing_brand}"
        Existing Product Code: "{existing_product_code}"
        """
    ).strip().format(
        description=description,
        merchant=merchant or "none",
        existing_brand=existing_brand or "none",
        existing_product_code=existing_product_code or "none",
    )
    instructions = dedent(
        """
        Please provide:
        1. Brand name (standardized, e.g., "Amazon.com" -> "Amazon")
        2. Product category hierarchy (3 levels max, e.g., ["Electronics", "Audio", "Headphones"])
        3. UPC (12 digits) if it can be determined from the product code or description
        4. Size, color, material, model and weight when the description states them
        5. Confidence level (high/medium/low)

        Rules:
        - If you can't confidently determine brand/category, use "unknown"
        - Use null for any product detail that is not clearly stated
        - Standardize brand names (remove .com, normalize capitalization)
        - Categories should be general -> specific
        - Be conservative with confidence ratings

        Respond in JSON format:
        {
          "brand": "string",
          "category": ["level1", "level2", "level3"],
          "upc": "string | null",
          "size": "string | null",
          "color": "string | null",
          "material": "string | null",
          "model": "string | null",
          "weight": "string | null",
          "confidence": "high|medium|low"
        }
        """
    ).strip()
    return f"{header}\n\n{instructions}"
