from .yaml_export import (
    SUMMARY_FILENAME,
    generate_filename,
    load_articles,
    load_issue_pages,
    title_slug,
    write_articles,
    write_issue_pages,
)
