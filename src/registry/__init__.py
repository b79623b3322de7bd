"""Remote collaborators: Maven artifact fetcher and snapshot index scanner."""
