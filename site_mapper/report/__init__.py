"""site_mapper.report: sitemap.xml и отчёты об обходе (JSON и HTML), используемые CLI и тестами."""
