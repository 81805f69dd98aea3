"""
Editing boundary: the table handed to translators and read back afterwards.

One row per key, a 'key' column plus one column per locale. Cells for values
that are absent or empty are left blank for translators to fill in.
"""
import io
import os
import re

import pandas as pd

from .errors import ExchangeFormatError
from .reconciler import Edit

KEY_COLUMN = "key"
EXCEL_SHEET_NAME = "translations"
CSV_FENCE_REGEX = re.compile(r'^\s*```[A-Za-z]*\s*\n(.*?)\n?\s*```\s*$', re.DOTALL)


def missing_table(missing, locales) -> pd.DataFrame:
    rows = []
    for key, values in missing.items():
        row = {KEY_COLUMN: key}
        for locale in locales:
            row[locale] = values.get(locale) or ""
        rows.append(row)
    return pd.DataFrame(rows, columns=[KEY_COLUMN] + list(locales), dtype=str)


def table_to_csv(df) -> str:
    return df.to_csv(index=False, lineterminator="\n")


def write_exchange_table(missing, locales, path):
    """Writes the missing-key table as .csv or .xlsx (by extension). Returns the row count."""
    df = missing_table(missing, locales)
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    if path.lower().endswith(('.xlsx', '.xls')):
        df.to_excel(path, sheet_name=EXCEL_SHEET_NAME, index=False)
    else:
        with open(path, 'w', encoding='utf-8', newline='') as f:
            f.write(table_to_csv(df))
    return len(df)


def edits_from_table(df, locales) -> list:
    """Edits for every non-empty cell of a known locale column. Unknown columns are ignored."""
    df.columns = [str(col).strip() for col in df.columns]
    if KEY_COLUMN not in df.columns:
        raise ExchangeFormatError(f"Table must contain a '{KEY_COLUMN}' column. Found: {list(df.columns)}")
    locale_columns = [col for col in df.columns if col in locales]
    if not locale_columns:
        raise ExchangeFormatError(f"Table has no column for any configured locale ({', '.join(locales)}).")
    df = df.fillna('')
    edits = []
    for record in df.to_dict('records'):
        key = str(record[KEY_COLUMN]).strip()
        if not key:
            continue
        for locale in locale_columns:
            value = str(record[locale])
            if value:
                edits.append(Edit(key, locale, value))
    return edits


def parse_edit_text(text, locales) -> list:
    """
    Reads a pasted CSV table (e.g. a translator's reply). A surrounding
    ```csv ... ``` fence is removed first.
    """
    fenced = CSV_FENCE_REGEX.match(text)
    if fenced:
        text = fenced.group(1)
    text = text.strip()
    if not text:
        raise ExchangeFormatError("No table data found.")
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ExchangeFormatError(f"Could not parse CSV data: {e}")
    return edits_from_table(df, locales)


def read_edit_batch(path, locales) -> list:
    if path.lower().endswith(('.xlsx', '.xls')):
        try:
            df = pd.read_excel(path, dtype=str, keep_default_na=False)
        except FileNotFoundError:
            raise ExchangeFormatError(f"Edit table not found: {path}")
        except ValueError as e:
            raise ExchangeFormatError(f"Could not read Excel table {path}: {e}")
        return edits_from_table(df, locales)
    try:
        with open(path, 'r', encoding='utf-8-sig') as f:
            text = f.read()
    except FileNotFoundError:
        raise ExchangeFormatError(f"Edit table not found: {path}")
    return parse_edit_text(text, locales)


def build_translation_prompt(missing, locales, source_locale="en") -> str:
    """Instructions for a translator (human or model) followed by the CSV block to fill in."""
    csv_data = table_to_csv(missing_table(missing, locales)).rstrip("\n")
    target_locales = ", ".join(l for l in locales if l != source_locale)
    other_locales = ", ".join(f"'{l}'" for l in locales if l != source_locale)
    return (
        "You are an expert translator for a web application. I will provide a table of translation keys in CSV format.\n"
        f"The '{KEY_COLUMN}' column must not be changed.\n"
        f"The '{source_locale}' column usually contains the source text, otherwise you will have to derive the meaning "
        f"from the key or the other language columns {other_locales} if given.\n\n"
        f"Your task is to translate the text into the following languages and fill in all of their respective columns: {target_locales}.\n"
        "If a value already exists in a target language column, you can use it as context, "
        f"but prioritize translating from the '{source_locale}' column.\n"
        "Please provide the response as a single, complete CSV block including the header.\n\n"
        "Here is the data:\n"
        f"```csv\n{csv_data}\n```\n"
    )
