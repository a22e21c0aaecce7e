"""site_mapper.crawler: frontier traversal, fetching, robots.txt and crawl statistics."""
