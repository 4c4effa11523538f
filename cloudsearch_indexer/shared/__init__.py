# Shared configuration and base models
